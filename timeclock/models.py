from __future__ import annotations
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from timeclock.errors import StatusCategory


class TimeEntryStatus(str, Enum):
    ACTIVE = "active"
    ON_BREAK = "on_break"
    COMPLETED = "completed"
    PENDING_APPROVAL = "pending_approval"


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TimeOffType(str, Enum):
    PTO = "pto"
    SICK = "sick"
    PERSONAL = "personal"
    UNPAID = "unpaid"
    BEREAVEMENT = "bereavement"
    OTHER = "other"


class StoreRecord(BaseModel):
    """Common shape of records returned by the store."""
    model_config = ConfigDict(extra="ignore")

    id: str
    created: Optional[datetime] = None
    updated: Optional[datetime] = None

    @field_validator("*", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        # The store returns "" for unset optional fields.
        if value == "":
            return None
        return value


class TimeEntry(StoreRecord):
    """One work session."""
    user: str
    clock_in: datetime
    clock_out: Optional[datetime] = None
    break_start: Optional[datetime] = None
    break_end: Optional[datetime] = None
    status: TimeEntryStatus = TimeEntryStatus.ACTIVE
    total_hours: float = 0.0
    category: Optional[str] = None
    notes: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.status in (TimeEntryStatus.ACTIVE, TimeEntryStatus.ON_BREAK)


class EditRequest(StoreRecord):
    """A correction proposal against a completed entry."""
    user: str
    time_entry: str
    reason: str
    requested_changes: Dict[str, Any] = Field(default_factory=dict)
    status: RequestStatus = RequestStatus.PENDING


class TimeOffRequest(StoreRecord):
    user: str
    type: TimeOffType
    start_date: date
    end_date: date
    reason: Optional[str] = None
    status: RequestStatus = RequestStatus.PENDING

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _date_part(cls, value: Any) -> Any:
        # Date fields come back as full timestamps ("2024-01-01 00:00:00.000Z").
        if isinstance(value, str) and len(value) > 10:
            return value[:10]
        return value


class UserProfile(StoreRecord):
    user: str
    pto_balance: float = 0.0
    sick_balance: float = 0.0
    role: str = "employee"
    overtime_threshold: float = 8.0


class UserRecord(StoreRecord):
    email: Optional[str] = None
    name: Optional[str] = None


class AuthSession(BaseModel):
    token: str
    user: UserRecord


# Gateway result
class Result(BaseModel):
    """Outcome of a gateway operation: data on success, categorized error otherwise."""
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    statusCategory: Optional[StatusCategory] = None
    statusCode: Optional[int] = None

    @classmethod
    def ok(cls, data: Any = None) -> "Result":
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        error: str,
        category: StatusCategory = StatusCategory.OTHER,
        status_code: Optional[int] = None,
    ) -> "Result":
        return cls(success=False, error=error, statusCategory=category, statusCode=status_code)


# Command bodies
class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str
    password_confirm: str


class ManualEntryRequest(BaseModel):
    entry_date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    break_minutes: int = 0
    category: Optional[str] = None
    notes: Optional[str] = None


class TimeOffFormRequest(BaseModel):
    type: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    reason: Optional[str] = None


class EditRequestForm(BaseModel):
    entry_id: Optional[str] = None
    reason: Optional[str] = None
    clock_in: Optional[str] = None
    clock_out: Optional[str] = None


# API Response Envelopes
class ApiError(BaseModel):
    """Structured error response."""
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None


class ApiResponse(BaseModel):
    """Standard API response envelope."""
    ok: bool
    data: Optional[Any] = None
    error: Optional[ApiError] = None

    @classmethod
    def success(cls, data: Any = None) -> "ApiResponse":
        """Create a success response."""
        return cls(ok=True, data=data)

    @classmethod
    def failure(
        cls,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> "ApiResponse":
        """Create an error response."""
        return cls(
            ok=False,
            error=ApiError(code=code, message=message, details=details),
        )
