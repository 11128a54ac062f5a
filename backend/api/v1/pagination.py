"""Pagination response header helpers."""

from fastapi import Response


def set_next_offset_header(
    response: Response,
    *,
    offset: int,
    returned: int,
    has_more: bool,
) -> None:
    if has_more:
        response.headers["X-Next-Offset"] = str(offset + returned)
