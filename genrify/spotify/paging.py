from typing import Callable, List, TypeVar

from genrify.core import Page, ValidationError

T = TypeVar("T")

FetchPage = Callable[[int, int], Page]


def collect_paged(page_size: int, max_items: int, fetch_page: FetchPage) -> List[T]:
    """
    Walk an offset-paginated endpoint into one ordered list.

    fetch_page(limit, offset) is called strictly one page at a time.
      - max_items == 0 : unbounded, stop when `next` is empty or a page is empty
      - max_items > 0  : stop once max_items are collected (result trimmed);
                         the last request asks only for what is still missing
    Errors from fetch_page propagate as-is; retries belong to the HTTP client.
    """
    if max_items < 0:
        raise ValidationError("max must be >= 0", details={"max": max_items})
    if page_size <= 0:
        raise ValidationError("page size must be > 0", details={"page_size": page_size})

    limit = page_size
    if 0 < max_items < limit:
        limit = max_items

    out: List[T] = []
    offset = 0

    while True:
        page = fetch_page(limit, offset)
        out.extend(page.items)

        if max_items > 0 and len(out) >= max_items:
            return out[:max_items]
        if not page.next or not page.items:
            return out

        offset += limit

        if max_items > 0:
            remaining = max_items - len(out)
            if remaining < limit:
                limit = remaining
