"""
Pagination normalization.

Platforms report paging in two incompatible ways. Both helpers below drain
every page into one ordered list before returning; an exception raised while
fetching any page propagates and the items gathered so far are discarded.
"""
from typing import Any, Callable, List, Tuple

from vcs_bridge.core.context import Context
from vcs_bridge.utils import get_logger

logger = get_logger(__name__)

# fetch_page(page) -> (items on that page, last/total page indicator)
PageFetcher = Callable[[int], Tuple[List[Any], int]]


def collect_zero_indexed(fetch_page: PageFetcher, ctx: Context) -> List[Any]:
    """
    Drain a listing whose counter starts at 0 and reports a last page.

    Stops once ``page + 1 >= last_page``. A last page of 0 (no indicator)
    ends the loop after the current page.

    Args:
        fetch_page: Called with 0, 1, 2, ...
        ctx: Checked before every page

    Returns:
        All items, in request order
    """
    results = []
    page = 0
    while True:
        ctx.check()
        items, last_page = fetch_page(page)
        results.extend(items)
        if page + 1 >= last_page:
            break
        page += 1
    logger.debug(f"Collected {len(results)} items from {page + 1} page(s)")
    return results


def collect_one_indexed(fetch_page: PageFetcher, ctx: Context) -> List[Any]:
    """
    Drain a listing whose counter starts at 1 and reports a page total.

    Stops once ``page >= total_pages``.

    Args:
        fetch_page: Called with 1, 2, 3, ...
        ctx: Checked before every page

    Returns:
        All items, in request order
    """
    results = []
    page = 1
    while True:
        ctx.check()
        items, total_pages = fetch_page(page)
        results.extend(items)
        if page >= total_pages:
            break
        page += 1
    logger.debug(f"Collected {len(results)} items from {page} page(s)")
    return results
