from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from timeclock.announcer import Priority
from timeclock.errors import StatusCategory, StoreError, TimeClockError, ValidationError
from timeclock.models import ApiResponse, EditRequestForm, ManualEntryRequest, Result, TimeOffFormRequest
from timeclock.routes.responses import Services, error_response, services
from timeclock.routes.session import session_snapshot
from timeclock.timesheet import Period, day_start, period_filter, summarize, time_off_rows

router = APIRouter()

RECENT_ENTRIES = 5


def _load_failed(svc: Services, what: str, result: Result) -> ApiResponse:
    error = StoreError.from_category(
        result.error or "Unknown error",
        result.statusCategory or StatusCategory.OTHER,
        result.statusCode,
    )
    svc.notifications.report_store_error(error)
    svc.announcer.announce(f"Unable to load {what}", Priority.ASSERTIVE)
    return error_response(error)


@router.post("/entries/manual")
async def submit_manual_entry(body: ManualEntryRequest, svc: Services = Depends(services)):
    """Submit a manual entry; it is created pending manager approval."""
    try:
        entry = await svc.forms.submit_manual_entry(body)
    except TimeClockError as e:
        return error_response(e)
    return ApiResponse.success(data=entry.model_dump(mode="json"))


@router.post("/edit-requests")
async def submit_edit_request(body: EditRequestForm, svc: Services = Depends(services)):
    try:
        request = await svc.forms.submit_edit_request(body)
    except TimeClockError as e:
        return error_response(e)
    return ApiResponse.success(data=request.model_dump(mode="json"))


@router.post("/time-off")
async def submit_time_off(body: TimeOffFormRequest, svc: Services = Depends(services)):
    try:
        request, days = await svc.forms.submit_time_off(body)
    except TimeClockError as e:
        return error_response(e)
    return ApiResponse.success(data={"request": request.model_dump(mode="json"), "days": days})


@router.get("/time-off")
async def time_off_history(svc: Services = Depends(services)):
    """Time off history with day counts, plus current balances."""
    result = await svc.gateway.get_time_off_requests()
    if not result.success:
        return _load_failed(svc, "time off requests", result)

    profile = svc.controller.profile
    rows = time_off_rows(result.data)
    svc.announcer.announce(f"Loaded {len(rows)} time off requests")
    return ApiResponse.success(data={
        "requests": [r.model_dump(mode="json") for r in rows],
        "ptoBalance": profile.pto_balance if profile else None,
        "sickBalance": profile.sick_balance if profile else None,
    })


@router.get("/timesheet")
async def timesheet(
    period: Period = Query(Period.CURRENT),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    svc: Services = Depends(services),
):
    """Entries and hour summary for a pay period or a custom date range."""
    try:
        query = period_filter(period, svc.controller.clock(), start, end)
    except ValidationError as e:
        svc.announcer.announce_form_error(e.field, e.message)
        return error_response(e)

    svc.announcer.announce_loading("timesheet", True)
    result = await svc.gateway.get_time_entries(query)
    svc.announcer.announce_loading("timesheet", False)
    if not result.success:
        return _load_failed(svc, "time entries", result)

    entries = result.data
    summary = summarize(entries, svc.controller.overtime_threshold)
    if entries:
        svc.announcer.announce(f"Loaded {len(entries)} time entries")
    else:
        svc.announcer.announce("No time entries found for selected period")
    return ApiResponse.success(data={
        "summary": summary.model_dump(),
        "entries": [e.model_dump(mode="json") for e in entries],
    })


@router.get("/dashboard")
async def dashboard(svc: Services = Depends(services)):
    """Today's and this week's totals, recent entries and the session state."""
    now = svc.controller.clock()
    week = await svc.gateway.get_time_entries(period_filter(Period.WEEK, now))
    if not week.success:
        return _load_failed(svc, "dashboard", week)

    today_start = day_start(now)
    today = [e for e in week.data if e.created is not None and e.created >= today_start]
    recent = await svc.gateway.get_time_entries()
    if not recent.success:
        return _load_failed(svc, "recent entries", recent)

    profile = svc.controller.profile
    return ApiResponse.success(data={
        "session": session_snapshot(svc),
        "today": summarize(today, svc.controller.overtime_threshold).model_dump(),
        "week": summarize(week.data, svc.controller.overtime_threshold).model_dump(),
        "recent": [e.model_dump(mode="json") for e in recent.data[:RECENT_ENTRIES]],
        "ptoBalance": profile.pto_balance if profile else None,
    })
