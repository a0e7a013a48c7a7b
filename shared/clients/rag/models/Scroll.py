from pydantic import BaseModel


class ScrollResult(BaseModel):
    """One page of record points read back from the store.

    Attributes:
        result:           Point dicts of the page, payload and vector included.
        status:           Backend status string (e.g. "ok").
        time:             Backend execution time of the request.
        next_page_offset: Cursor for the next page, None on the last page.
    """

    result: list[dict]
    status: str = "ok"
    time: float = 0
    next_page_offset: str | int | None = None
