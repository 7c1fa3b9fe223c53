from __future__ import annotations

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class ApiError(BaseModel):
    """Mastodon error payload."""

    error: str
    details: Optional[Any] = None


class ReportIn(BaseModel):
    """POST /api/v1/reports body."""

    account_id: str
    status_ids: List[str] = Field(default_factory=list)
    comment: str = ""
    category: str = "other"
    forward: bool = False


class MarkerPosition(BaseModel):
    last_read_id: str


class MarkersIn(BaseModel):
    """POST /api/v1/markers body; either timeline may be omitted."""

    home: Optional[MarkerPosition] = None
    notifications: Optional[MarkerPosition] = None

    def positions(self) -> Dict[str, str]:
        out: Dict[str, str] = {}
        if self.home is not None:
            out["home"] = self.home.last_read_id
        if self.notifications is not None:
            out["notifications"] = self.notifications.last_read_id
        return out
