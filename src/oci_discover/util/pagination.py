from __future__ import annotations

from typing import Any, Callable, Generator, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")

NEXT_PAGE_HEADER = "opc-next-page"


def paginate(
    fetch: Callable[[str | None], Tuple[Sequence[T], str | None]]
) -> Generator[T, None, None]:
    """
    Yield items from fetch(page_token) until no further page is announced.
    fetch must return (items, next_page_token); a falsy token ends iteration.
    """
    page: str | None = None
    while True:
        items, next_page = fetch(page)
        yield from items
        if not next_page:
            break
        page = next_page


def next_page_token(resp: Any) -> Optional[str]:
    headers = getattr(resp, "headers", None) or {}
    token = headers.get(NEXT_PAGE_HEADER)
    return str(token) if token else None


def paginate_oci(call: Callable[..., Any], *args: Any, **kwargs: Any) -> Generator[Any, None, None]:
    """
    Walk an OCI SDK list_* call across pages, passing page= on every request
    after the first and yielding the entries of each response's data list.

    A response whose data is None is reported as ValueError since no entries
    can be extracted from it.
    """

    def fetch(page: str | None) -> Tuple[List[Any], str | None]:
        call_kwargs = dict(kwargs)
        if page:
            call_kwargs["page"] = page
        resp = call(*args, **call_kwargs)
        data = getattr(resp, "data", None)
        if data is None:
            raise ValueError("OCI list call returned no data payload")
        return list(data), next_page_token(resp)

    return paginate(fetch)
