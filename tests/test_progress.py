from segops.cli.common.progress import drain_with_progress
from segops.core.graph import Page
from segops.core.sync import drain


def test_drain_with_progress_returns_listing_result():
    pages = {
        "": Page(items=[1, 2], next_token="t1"),
        "t1": Page(items=[3], errors={"SOURCE": "boom"}),
    }

    drained = drain_with_progress(
        "Listing numbers",
        lambda on_page: drain(pages.__getitem__, on_page=on_page),
    )

    assert drained.items == [1, 2, 3]
    assert drained.pages == 2
    assert drained.errors == {"SOURCE": "boom"}
