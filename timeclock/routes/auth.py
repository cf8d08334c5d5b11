import logging

from fastapi import APIRouter, Depends

from timeclock.errors import StoreError, TimeClockError
from timeclock.models import ApiResponse, LoginRequest, RegisterRequest
from timeclock.routes.responses import Services, error_response, services

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth")


@router.post("/login")
async def login(body: LoginRequest, svc: Services = Depends(services)):
    """Sign in, then load the user's profile and any open session."""
    try:
        auth = await svc.forms.login(body)
    except TimeClockError as e:
        return error_response(e)

    try:
        await svc.controller.refresh()
    except StoreError as e:
        # Sign-in stands; the controller already announced the failure.
        logger.warning(f"Session refresh after login failed: {e.message}")

    return ApiResponse.success(data={"user": auth.user.model_dump(mode="json")})


@router.post("/register")
async def register(body: RegisterRequest, svc: Services = Depends(services)):
    try:
        user = await svc.forms.register(body)
    except TimeClockError as e:
        return error_response(e)
    return ApiResponse.success(data={"user": user.model_dump(mode="json")})


@router.post("/logout")
async def logout(svc: Services = Depends(services)):
    """Forget the local session; an open time entry stays open in the store."""
    was_clocked_in = svc.controller.entry is not None
    svc.gateway.logout()
    svc.controller.reset()
    svc.announcer.announce("Logged out")
    return ApiResponse.success(data={"wasClockedIn": was_clocked_in})


@router.get("/status")
async def status(svc: Services = Depends(services)):
    user = svc.gateway.current_user()
    return ApiResponse.success(data={
        "authenticated": svc.gateway.is_authenticated(),
        "user": user.model_dump(mode="json") if user else None,
    })
