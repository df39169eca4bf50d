# crm_reports/logging/router.py
"""API router for stored request logs."""

from fastapi import APIRouter, Depends, Query, Response, HTTPException
from typing import List, Optional, Dict, Any

from crm_reports.core.dependencies import SessionDep
from crm_reports.logging.dao import LogDAO
from crm_reports.logging.schemas import LogRead


router = APIRouter(
    prefix="/logs",
    tags=["logs"],
)


def get_log_dao(session: SessionDep) -> LogDAO:
    return LogDAO(session)


@router.get("/", response_model=List[LogRead])
def get_logs(
    response: Response,
    limit: int = Query(50, ge=1, le=1000, description="Maximum number of logs to return"),
    offset: int = Query(0, ge=0, description="Number of logs to skip"),
    hours: int = Query(24, ge=1, le=168, description="Time window in hours"),
    status_min: Optional[int] = Query(None, ge=100, le=599, description="Minimum status code"),
    path: Optional[str] = Query(None, description="Only paths containing this text"),
    log_dao: LogDAO = Depends(get_log_dao),
) -> List[LogRead]:
    """Get logs with pagination and filtering."""
    logs = log_dao.get_logs_with_filters(skip=offset, limit=limit, hours=hours, status_min=status_min, path=path)

    # Pagination headers
    response.headers["X-Total-Count"] = str(log_dao.count_logs_with_filters(hours, status_min, path))
    response.headers["X-Page-Size"] = str(limit)
    response.headers["X-Page-Offset"] = str(offset)

    return [LogRead.model_validate(log) for log in logs]


@router.get("/errors", response_model=List[LogRead])
def get_error_logs(
    hours: int = Query(24, ge=1, le=168),
    limit: int = Query(100, ge=1, le=500),
    log_dao: LogDAO = Depends(get_log_dao),
) -> List[LogRead]:
    """Requests that ended with a 4xx or 5xx status."""
    logs = log_dao.get_logs_with_filters(limit=limit, hours=hours, status_min=400)
    return [LogRead.model_validate(log) for log in logs]


@router.post("/cleanup", response_model=Dict[str, Any])
def cleanup_old_logs(
    days_to_keep: int = Query(90, ge=1, le=365),
    log_dao: LogDAO = Depends(get_log_dao),
) -> Dict[str, Any]:
    deleted = log_dao.cleanup_old_logs(days_to_keep)
    return {"deleted_count": deleted, "days_kept": days_to_keep}


@router.get("/{log_id}", response_model=LogRead)
def get_log_by_id(log_id: int, log_dao: LogDAO = Depends(get_log_dao)) -> LogRead:
    log = log_dao.get_by_id(log_id)
    if not log:
        raise HTTPException(status_code=404, detail="Log not found")
    return LogRead.model_validate(log)
