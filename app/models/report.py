"""
Pydantic models for citizen reports.
These models handle validation for report submission, officer actions and responses.
"""

from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import Dict, List, Optional
from enum import Enum

from app.models.base import Location, MediaUpload
from app.utils.firestore_helpers import to_datetime


class ReportPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


PRIORITY_RANK = {
    ReportPriority.CRITICAL.value: 3,
    ReportPriority.HIGH.value: 2,
    ReportPriority.MEDIUM.value: 1,
    ReportPriority.LOW.value: 0,
}


class ReportCreate(BaseModel):
    """
    Model for creating a new report (incoming POST request).
    Media is passed as already-hosted URLs; at least one image is required.
    """
    title: str = Field(..., min_length=5, max_length=200, description="Short summary of the issue")
    description: str = Field(..., min_length=10, max_length=2000, description="What the citizen observed")
    department_id: str = Field(..., min_length=1, description="Department the report is routed to")
    location: Location
    media: MediaUpload = Field(default_factory=MediaUpload)
    priority: ReportPriority = ReportPriority.MEDIUM

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Large pothole on MG Road",
                "description": "Deep pothole near the school gate, two-wheelers are skidding.",
                "department_id": "dept-roads",
                "location": {
                    "type": "Point",
                    "coordinates": [73.7898, 19.9975],
                    "address": "MG Road, Nashik",
                },
                "media": {"images": ["https://cdn.example.com/pothole.jpg"]},
                "priority": "high",
            }
        }
        extra = "ignore"


class StatusUpdateRequest(BaseModel):
    """
    Officer status change. `status` is a free string so unknown values are
    reported as an invalid transition rather than a schema error.
    """
    status: str = Field(..., min_length=1, max_length=50)
    remarks: Optional[str] = Field(None, max_length=500)
    resolution_notes: Optional[str] = Field(None, max_length=1000)


class RejectRequest(BaseModel):
    """Rejection reason is trimmed and length-checked by the service."""
    reason: Optional[str] = Field(None, max_length=2000)


class StatusHistoryEntry(BaseModel):
    """One append-only audit entry on a report or emergency."""
    status: str
    changed_by: Optional[str] = None
    changed_at: datetime
    remarks: Optional[str] = None


def report_to_response(report: Dict) -> Dict:
    """Add derived read-only fields to a stored report."""
    media = report.get("media") or {}
    media_count = sum(len(media.get(kind) or []) for kind in ("images", "videos", "audio"))

    created_at = to_datetime(report.get("created_at"))
    days = None
    if created_at is not None:
        days = (datetime.now(timezone.utc) - created_at).days

    response = dict(report)
    response.pop("is_deleted", None)
    response["media_count"] = media_count
    response["days_since_submission"] = days
    return response


def media_from_urls(media: MediaUpload, uploaded_at: datetime) -> Dict[str, List[Dict]]:
    """Convert submitted URL lists into stored MediaItem dicts."""
    def items(urls: List[str]) -> List[Dict]:
        return [
            {"url": url, "public_id": url.rstrip("/").rsplit("/", 1)[-1] or None, "uploaded_at": uploaded_at}
            for url in urls
            if url and url.strip()
        ]

    return {
        "images": items(media.images),
        "videos": items(media.videos),
        "audio": items(media.audio),
    }
