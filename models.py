"""Pydantic models shared by the store, the rule engine and the API."""
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

NIL_UUID = uuid.UUID(int=0)


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form every stored date uses."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class MaintenanceSubmission(BaseModel):
    """A candidate maintenance record, not yet validated.

    Missing identifiers default to the nil UUID and missing text to an empty
    string so that the rule engine, not the schema, reports them.
    """

    equipment_id: uuid.UUID = NIL_UUID
    equipment_name: str = ""
    maintenance_date: Optional[datetime] = None
    maintenance_type: str = ""
    description: str = ""
    user_id: uuid.UUID = NIL_UUID
    user_name: str = ""

    @field_validator("maintenance_date")
    @classmethod
    def _normalise_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)

    @field_validator("equipment_name", "maintenance_type", "description", "user_name", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value


class MaintenanceRecord(BaseModel):
    """An accepted maintenance event.  Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    equipment_id: uuid.UUID
    equipment_name: str
    maintenance_date: datetime
    maintenance_type: str
    description: str
    user_id: uuid.UUID
    user_name: str
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("maintenance_date", "created_at")
    @classmethod
    def _normalise_dates(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @classmethod
    def from_submission(cls, submission: MaintenanceSubmission, created_at: Optional[datetime] = None) -> "MaintenanceRecord":
        return cls(
            equipment_id=submission.equipment_id,
            equipment_name=submission.equipment_name,
            maintenance_date=submission.maintenance_date,
            maintenance_type=submission.maintenance_type.strip().lower(),
            description=submission.description,
            user_id=submission.user_id,
            user_name=submission.user_name,
            created_at=created_at or utcnow(),
        )


class ValidationVerdict(BaseModel):
    is_valid: bool
    errors: List[str] = []
    warnings: List[str] = []
