# crm_reports/logging/recorder.py
"""Writes request log rows outside the request's own session."""

import getpass
import json
import logging
import platform
import socket
from datetime import datetime

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError

from crm_reports.core.config import APPLICATION_ID
from crm_reports.core.database import SessionLocal
from crm_reports.logging.dao import LogDAO

logger = logging.getLogger(__name__)


def _process_user() -> str:
    try:
        return getpass.getuser() or "unknown_user"
    except (KeyError, OSError):
        return "unknown_user"


USERNAME = _process_user()
HOSTNAME = socket.gethostname() or platform.node() or "unknown_host"


def safe_json_dumps(obj) -> str:
    def default(o):
        if isinstance(o, (datetime, Exception)):
            return str(o)
        return str(o)

    return json.dumps(obj, indent=2, default=default)


def record_request(
    request: Request,
    status_code: int,
    request_body: str = None,
    response_body: str = None,
    processing_time: float = None,
) -> None:
    """Persist one log row; a failure to log never fails the request."""
    log_data = dict(
        method=request.method,
        path=str(request.url.path),
        status_code=status_code,
        client_ip=request.client.host if request.client else None,
        request_headers=json.dumps(dict(request.headers)),
        request_body=request_body,
        response_body=response_body,
        processing_time=processing_time,
        user_agent=request.headers.get("user-agent"),
        org_id=request.headers.get("x-org-id"),
        username=request.headers.get("x-user-id") or USERNAME,
        hostname=HOSTNAME,
        application_id=APPLICATION_ID,
    )
    with SessionLocal() as session:
        try:
            LogDAO(session).create_log(**log_data)
        except SQLAlchemyError as e:
            session.rollback()
            logger.warning(f"Could not write request log for {log_data['method']} {log_data['path']}: {e}")
