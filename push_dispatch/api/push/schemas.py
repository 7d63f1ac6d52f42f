"""Schemas for the push dispatch endpoint."""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class NotificationRequestBody(BaseModel):
    data: Dict[str, Any] = Field(..., description="Opaque payload delivered to the app")
    notification: Optional[Dict[str, Any]] = None
    content_available: Optional[bool] = None
    expiration_time: Optional[int] = Field(None, description="Absolute deadline, epoch milliseconds")


class DeviceBody(BaseModel):
    device_token: str = Field(alias="deviceToken", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class PushCreate(BaseModel):
    """Payload sent by an internal service to push one notification to many devices."""
    request: NotificationRequestBody
    devices: List[DeviceBody]


class PushResultRead(BaseModel):
    device_token: str = Field(alias="deviceToken")
    transmitted: bool
    error: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class PushResultList(BaseModel):
    results: List[PushResultRead]
    total_count: int
