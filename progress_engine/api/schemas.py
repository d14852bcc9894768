"""
Envelope schemas for the API layer: errors, health and status
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


ServiceHealth = Literal["healthy", "degraded", "unhealthy"]


# Error Schemas
class ErrorDetail(BaseModel):
    """One failed check from request validation"""
    type: str = Field(..., description="Validation error type")
    message: str
    field: Optional[str] = Field(None, description="Dotted location, e.g. body.topic_id")


class ErrorResponse(BaseModel):
    """Body returned by every error handler"""
    error: str
    detail: Optional[str] = None
    details: Optional[List[ErrorDetail]] = None
    error_code: Optional[str] = Field(None, description="Machine readable code, e.g. snapshot_store_unavailable")
    request_id: Optional[str] = None


# Health and Status Schemas
class HealthResponse(BaseModel):
    """Store connectivity; an unreachable remote only degrades the service"""
    status: ServiceHealth
    timestamp: datetime
    services: Dict[str, str] = Field(default_factory=dict, description="Per-store status, keyed redis/database")
    version: Optional[str] = None


class StatusResponse(BaseModel):
    service: str
    status: str
    version: str
    features: List[str]
    timezone: str = Field(..., description="Zone used for calendar days and week starts")
    leagues: List[str] = Field(default_factory=list, description="League ids from lowest to highest")
    remote_sync: bool = Field(False, description="Whether Supabase credentials are configured")
