"""
Pydantic models for PocketBase REST API payloads.
Minimal subset used by the time clock.
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List


class ListResult(BaseModel):
    """One page of a record listing."""
    page: int = 1
    perPage: int = 0
    totalItems: int = 0
    totalPages: int = 0
    items: List[Dict[str, Any]] = Field(default_factory=list)


class AuthResponse(BaseModel):
    """Response of an auth-with-password call."""
    token: str
    record: Dict[str, Any]


class PasswordAuth(BaseModel):
    """Request body for auth-with-password."""
    identity: str
    password: str
