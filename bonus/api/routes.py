"""REST endpoints: GET /, GET /health, POST /trigger, GET /status[/{date}]."""
from datetime import date, datetime, timezone

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse

from bonus.config import MissingCredentials
from bonus.database import list_statuses, load_status, status_key
from bonus.jobs import local_today, run_daily

router = APIRouter()


@router.get("/")
async def index():
    return {
        "name": "Bahamut daily bonus",
        "version": "1.0.0",
        "endpoints": {
            "/trigger": "run the daily sign-in now (POST)",
            "/status": "today's stored result",
            "/status/history": "all retained results",
            "/health": "liveness probe",
        },
    }


@router.get("/health")
async def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.post("/trigger")
async def trigger(force: bool = Query(False, description="Run even if today already succeeded")):
    from bonus.config import settings
    try:
        report = await run_daily(settings, force=force)
    except MissingCredentials as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    body = report.to_dict()
    return JSONResponse(body, status_code=200 if report.success else 500)


@router.get("/status")
async def status_today():
    from bonus.config import settings
    return await _status_for(local_today(settings))


@router.get("/status/history")
async def status_history():
    return {"statuses": await list_statuses()}


@router.get("/status/{day}")
async def status_for_day(day: date):
    """Stored report for an ISO date, e.g. GET /status/2024-03-09."""
    return await _status_for(day)


async def _status_for(day: date) -> dict:
    report = await load_status(day)
    if report is None:
        raise HTTPException(status_code=404, detail=f"No run recorded for {day.isoformat()}")
    return {"key": status_key(day), **report.to_dict()}
