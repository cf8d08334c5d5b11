"""
Shared helpers for command routes.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict

from fastapi import Request

from timeclock.announcer import QueuedAnnouncer
from timeclock.errors import StoreError, TimeClockError, ValidationError
from timeclock.forms import RequestForms
from timeclock.gateway import StoreGateway
from timeclock.models import ApiResponse
from timeclock.notifications import NotificationCenter
from timeclock.scheduler import SessionMonitor
from timeclock.session import SessionController


@dataclass
class Services:
    """Everything a route needs, built once per app."""
    gateway: StoreGateway
    announcer: QueuedAnnouncer
    notifications: NotificationCenter
    controller: SessionController
    monitor: SessionMonitor
    forms: RequestForms


def services(request: Request) -> Services:
    return request.app.state.services


def error_response(error: TimeClockError) -> ApiResponse:
    """Failure envelope carrying the field or store category of the error."""
    details: Dict[str, Any] = {}
    if isinstance(error, ValidationError):
        details["field"] = error.field
    if isinstance(error, StoreError):
        details["statusCategory"] = error.category.value
    return ApiResponse.failure(code=error.code, message=error.message, details=details or None)
