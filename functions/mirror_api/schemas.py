"""
Pydantic schemas for the mirror API.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel


class ApiResponse(BaseModel):
    status: Literal["ok", "error"]
    data: Any = None
    error: Optional[str] = None


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    message: str = "API is running"


class SyncTriggerData(BaseModel):
    job_id: str
    requested_at: float


class SyncTriggerResponse(BaseModel):
    status: Literal["ok"] = "ok"
    data: SyncTriggerData
