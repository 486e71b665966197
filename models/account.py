# models/account.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.notification import Notification

Role = Literal["owner", "admin", "user"]


class Device(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    device_id: str = Field(..., min_length=1)
    name: Optional[str] = None
    type: Optional[str] = None


class Account(BaseModel):
    """An account as read from / written to the store. `id` and `version` are store-assigned."""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    devices: List[Device] = Field(..., min_length=1)
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar: Optional[str] = None
    gender: Optional[str] = None
    birth_year: Optional[int] = None
    role: Role = "user"
    favorite_lines: List[str] = Field(default_factory=list)
    favorite_stops: List[str] = Field(default_factory=list)
    notifications: List[Notification] = Field(default_factory=list)
    version: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def device_ids(self) -> List[str]:
        return [device.device_id for device in self.devices]


class AccountCreate(BaseModel):
    """POST /accounts body. New accounts always start as role "user"; owners grant roles via PUT."""
    devices: List[Device] = Field(..., min_length=1)
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar: Optional[str] = None
    gender: Optional[str] = None
    birth_year: Optional[int] = Field(None, ge=1900)
    favorite_lines: List[str] = Field(default_factory=list)
    favorite_stops: List[str] = Field(default_factory=list)

    @field_validator("devices")
    @classmethod
    def _unique_device_ids(cls, value: List[Device]) -> List[Device]:
        device_ids = [device.device_id for device in value]
        if len(set(device_ids)) != len(device_ids):
            raise ValueError("Duplicate device id")
        return value


class AccountUpdate(BaseModel):
    """PUT /accounts/{id} body; only fields that were sent are applied."""
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar: Optional[str] = None
    gender: Optional[str] = None
    birth_year: Optional[int] = Field(None, ge=1900)
    role: Optional[Role] = None
    favorite_lines: Optional[List[str]] = None
    favorite_stops: Optional[List[str]] = None

    @field_validator("favorite_lines", "favorite_stops")
    @classmethod
    def _list_not_null(cls, value: Optional[List[str]]) -> List[str]:
        # omitting the field keeps the stored list; an explicit null would erase it
        if value is None:
            raise ValueError("Favorites must be a list")
        return value
