from fastapi import APIRouter, Depends, Query

from timeclock.calculator import format_duration
from timeclock.errors import TimeClockError
from timeclock.models import ApiResponse
from timeclock.routes.responses import Services, error_response, services

router = APIRouter()


def session_snapshot(svc: Services) -> dict:
    controller = svc.controller
    entry = controller.entry
    return {
        "state": controller.state.value,
        "busy": controller.busy,
        "entry": entry.model_dump(mode="json") if entry else None,
        "elapsed": format_duration(controller.elapsed_work_seconds()) if entry else svc.monitor.display,
        "overtimeThreshold": controller.overtime_threshold,
    }


@router.get("/session")
async def get_session(svc: Services = Depends(services)):
    """Current session state and elapsed work time."""
    return ApiResponse.success(data=session_snapshot(svc))


@router.post("/session/refresh")
async def refresh_session(svc: Services = Depends(services)):
    """Reload profile and open entry from the store."""
    try:
        await svc.controller.refresh()
    except TimeClockError as e:
        return error_response(e)
    return ApiResponse.success(data=session_snapshot(svc))


@router.post("/session/{action}")
async def run_transition(action: str, svc: Services = Depends(services)):
    """Clock in, start or end a break, or clock out."""
    transitions = {
        "clock-in": svc.controller.clock_in,
        "break-start": svc.controller.break_start,
        "break-end": svc.controller.break_end,
        "clock-out": svc.controller.clock_out,
    }
    transition = transitions.get(action)
    if transition is None:
        return ApiResponse.failure(code="not_found", message=f"Unknown session action: {action}")

    try:
        entry = await transition()
    except TimeClockError as e:
        return error_response(e)

    data = session_snapshot(svc)
    data["result"] = entry.model_dump(mode="json") if entry else None
    return ApiResponse.success(data=data)


@router.get("/notifications")
async def list_notifications(svc: Services = Depends(services)):
    return ApiResponse.success(data=[n.model_dump(mode="json") for n in svc.notifications.list()])


@router.delete("/notifications/{notification_id}")
async def dismiss_notification(notification_id: int, svc: Services = Depends(services)):
    if not svc.notifications.dismiss(notification_id):
        return ApiResponse.failure(code="not_found", message="Notification not found")
    return ApiResponse.success(data={"dismissed": notification_id})


@router.get("/announcements")
async def get_announcements(drain: bool = Query(True), svc: Services = Depends(services)):
    """Announcements for the page's live region, plus current field errors."""
    items = svc.announcer.drain() if drain else svc.announcer.pending()
    return ApiResponse.success(data={
        "announcements": [a.model_dump(mode="json") for a in items],
        "formErrors": dict(svc.announcer.form_errors),
    })
