"""Dependency injection for FastAPI endpoints"""

import hmac
from typing import Optional

from fastapi import Header, HTTPException, Request
from collectbook.config import settings
from collectbook.domain.business_date import BusinessClock
from collectbook.infrastructure.clients.audit import AuditClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_clock() -> BusinessClock:
    """Provide the business-timezone clock"""
    return BusinessClock(settings.business_timezone)


def get_audit_client() -> AuditClient:
    """Provide audit webhook client instance"""
    return AuditClient()


def get_actor_id(x_actor_id: Optional[str] = Header(None)) -> Optional[str]:
    """Collection officer posting the entry, as forwarded by the auth gateway"""
    return x_actor_id


def require_job_key(
    authorization: Optional[str] = Header(None),
    x_job_key: Optional[str] = Header(None),
) -> None:
    """Guard job endpoints with the shared jobs key (Bearer token or X-Job-Key)"""
    expected = settings.jobs_api_key
    token = ""
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    token = token or (x_job_key or "")

    if not expected or not token or not hmac.compare_digest(token.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")
