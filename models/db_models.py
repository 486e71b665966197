"""
SQLAlchemy ORM models: the account document and its device bindings.

Purpose:
- AccountModel is the root document; favorites and notifications live inside
  it as JSON arrays (mutation-tracked lists)
- DeviceModel rows are owned by exactly one account and are never queried on
  their own; they exist so "which account owns device X" is an indexed lookup

Production notes:
- device_id is indexed but deliberately not UNIQUE: exclusive ownership is
  enforced by AccountRepository.create, and a merge briefly holds the old and
  new rows inside one transaction
- version is an optimistic-concurrency counter bumped on every UPDATE
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, JSON, ForeignKey
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import relationship
from core.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class AccountModel(Base):
    """
    Represents an app account (one person, one or more devices).

    Columns:
    - id: internal identifier (uuid4 string)
    - email/first_name/last_name/avatar/gender/birth_year: profile
    - role: owner, admin or user
    - favorite_lines/favorite_stops: JSON arrays of ids
    - notifications: JSON array of notification subscriptions
    - version: optimistic concurrency counter
    - created_at/updated_at: audit timestamps
    """
    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(255), nullable=True, index=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    avatar = Column(String(500), nullable=True)
    gender = Column(String(50), nullable=True)
    birth_year = Column(Integer, nullable=True)
    role = Column(String(20), default="user", nullable=False, index=True)
    favorite_lines = Column(MutableList.as_mutable(JSON), default=list, nullable=False)
    favorite_stops = Column(MutableList.as_mutable(JSON), default=list, nullable=False)
    notifications = Column(MutableList.as_mutable(JSON), default=list, nullable=False)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    # --- relationships ---
    # One Account -> many Devices; removing a device from the list deletes its row
    devices = relationship(
        "DeviceModel",
        back_populates="account",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="DeviceModel.id",
    )

    __mapper_args__ = {"version_id_col": version}

    def __init__(self, devices=(), **kwargs):
        # accept plain dicts for devices so the store can build documents from mappings
        super().__init__(
            devices=[d if isinstance(d, DeviceModel) else DeviceModel(**d) for d in devices],
            **kwargs,
        )


class DeviceModel(Base):
    """
    A client device bound to an account.

    Columns:
    - device_id: client identifier (natural key used by every lookup)
    - name/type: display metadata supplied by the client
    """
    __tablename__ = "account_devices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    device_id = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    type = Column(String(100), nullable=True)

    # --- relationships ---
    account = relationship("AccountModel", back_populates="devices")
