"""
Database Schemas for the Beauty Parlour API

Each Pydantic model represents a MongoDB collection (lowercased class name)
or a request body accepted by the API.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Literal, Optional
from datetime import datetime

ServiceName = Literal["facial", "massage", "haircut", "manicure"]


class Appointment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(None, description="Client display name")
    email: Optional[str] = Field(None, description="Client email")
    phone: str = Field(..., description="Client phone number, used for lookups")
    date: datetime = Field(..., description="Appointment day")
    time: str = Field(..., pattern=r"^([0-1]\d|2[0-3]):([0-5]\d)$", description="24-hour HH:mm")
    service: ServiceName = Field(...)
    special_requests: Optional[str] = Field(None, alias="specialRequests")

    def to_document(self) -> dict:
        data = self.model_dump(by_alias=True)
        if data.get("specialRequests") is not None:
            data["specialRequests"] = data["specialRequests"].strip()
        return data


class AppointmentRequest(BaseModel):
    """Raw create/update body. Slot fields stay untyped so the service can
    report the specific validation failure itself."""

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    date: Optional[Any] = None
    time: Optional[Any] = None
    service: Optional[Any] = None
    special_requests: Optional[str] = Field(None, alias="specialRequests")
