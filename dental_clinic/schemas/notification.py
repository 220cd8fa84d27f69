from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    title: str
    body: Optional[str] = None
    severity: str
    scope: str
    audience_roles: Optional[List[str]] = None
    data: Optional[Dict[str, Any]] = None
    created_at: datetime
