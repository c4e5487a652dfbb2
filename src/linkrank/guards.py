"""Shared validation for page identifiers arriving from transports."""

from __future__ import annotations

MAX_PAGE_ID_LENGTH = 2048
MAX_EMBEDDED_URLS = 10000


def require_page_id(value: object, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field} is required")
    page_id = value.strip()
    if len(page_id) > MAX_PAGE_ID_LENGTH:
        raise ValueError(f"{field} exceeds {MAX_PAGE_ID_LENGTH} characters")
    return page_id


def require_page_ids(values: object, field: str) -> list[str]:
    if not isinstance(values, (list, tuple)):
        raise ValueError(f"{field} must be a list of strings")
    if len(values) > MAX_EMBEDDED_URLS:
        raise ValueError(f"{field} exceeds {MAX_EMBEDDED_URLS} entries")
    page_ids: list[str] = []
    for item in values:
        if not isinstance(item, str) or not item.strip():
            raise ValueError(f"{field} must be a list of non-empty strings")
        page_ids.append(require_page_id(item, field))
    return page_ids
