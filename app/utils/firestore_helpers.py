"""
Firestore query and document helpers shared by the services layer.

Firestore only handles equality/`in` filters cheaply without composite
indexes, so services filter by ownership in Firestore and do search, sort
and pagination in Python with the helpers below.
"""

import math
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from app.core.settings import settings


def where_filter(query, field_path: str, op_string: str, value):
    """
    Helper function for Firestore queries.

    Usage:
        query = where_filter(collection, "citizen_id", "==", user_id)
        query = where_filter(query, "status", "==", "submitted")
    """
    return query.where(field_path, op_string, value)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_datetime(value: Any) -> Optional[datetime]:
    """Normalize Firestore timestamps (or ISO strings) to aware datetimes."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if hasattr(value, "to_datetime"):
        return value.to_datetime()
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def snapshot_to_dict(doc) -> Optional[Dict]:
    """Document snapshot -> plain dict with its id, or None if missing."""
    if doc is None or not doc.exists:
        return None
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return data


def get_live_document(collection: str, doc_id: str) -> Optional[Dict]:
    """Fetch a document, treating soft-deleted documents as missing."""
    from app.config.firebase import get_db

    if not doc_id:
        return None
    data = snapshot_to_dict(get_db().collection(collection).document(doc_id).get())
    if data is None or data.get("is_deleted"):
        return None
    return data


def normalize_pagination(page: Optional[int], limit: Optional[int]) -> Dict[str, int]:
    page_num = page if page and page > 0 else 1
    limit_num = limit if limit and limit > 0 else settings.DEFAULT_PAGE_LIMIT
    limit_num = min(limit_num, settings.MAX_PAGE_LIMIT)
    return {"page": page_num, "limit": limit_num, "skip": (page_num - 1) * limit_num}


def pagination_meta(total: int, page: int, limit: int) -> Dict:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": total_pages,
        "has_next_page": page < total_pages,
        "has_previous_page": page > 1,
    }


def paginate(items: List[Dict], page: Optional[int], limit: Optional[int]) -> Dict:
    """Slice an already sorted list and return {items, pagination}."""
    p = normalize_pagination(page, limit)
    window = items[p["skip"]: p["skip"] + p["limit"]]
    return {"items": window, "pagination": pagination_meta(len(items), p["page"], p["limit"])}


def sort_documents(items: List[Dict], field: str = "created_at", descending: bool = True) -> List[Dict]:
    """Sort dicts by a field; documents missing the field go last."""
    present = [item for item in items if item.get(field) is not None]
    missing = [item for item in items if item.get(field) is None]

    def key(item):
        value = item.get(field)
        as_dt = to_datetime(value) if not isinstance(value, (int, float, str)) else None
        if as_dt is not None:
            return as_dt
        return value.lower() if isinstance(value, str) else value

    try:
        present.sort(key=key, reverse=descending)
    except TypeError:
        present.sort(key=lambda item: str(item.get(field)), reverse=descending)
    return present + missing


def text_matches(item: Dict, needle: Optional[str], fields: Iterable[str]) -> bool:
    """Case-insensitive substring search across string fields."""
    if not needle:
        return True
    needle = needle.lower()
    return any(needle in str(item.get(field) or "").lower() for field in fields)


def count_where(items: Iterable[Dict], predicate: Callable[[Dict], bool]) -> int:
    return sum(1 for item in items if predicate(item))
