"""User Schemas: Pydantic models with field-level validation for API boundaries.

Invariants:
    - UserCreate.name: 2-100 chars after stripping, non-empty
    - UserCreate.email: stripped and lower-cased before validation, max 255 chars
    - Responses never expose datastore-specific id types (always str)
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from userapp.core.domain_types import NewUser, UserRecord


class UserCreate(BaseModel):
    """Registration request."""
    name: str = Field(min_length=2, max_length=100)
    email: str = Field(
        max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$",
    )

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("name cannot be empty or whitespace")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    def to_domain(self) -> NewUser:
        return NewUser(name=self.name, email=self.email)


class UserResponse(BaseModel):
    """Public-facing user data."""
    id: str
    name: str
    email: str
    created_at: datetime

    @classmethod
    def from_record(cls, record: UserRecord) -> "UserResponse":
        return cls(
            id=record.id,
            name=record.name,
            email=record.email,
            created_at=record.created_at,
        )


class UserStats(BaseModel):
    total_users: int
    timestamp: datetime
