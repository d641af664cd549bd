"""Dependency injection for FastAPI endpoints"""

from fastapi import Request
from billing_gateway.infrastructure.scheduling.debits_scheduler import DebitsScheduler


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_scheduler(request: Request) -> DebitsScheduler:
    """Scheduler shared with the background loop, so manual runs take the same cycle lock"""
    return request.app.state.scheduler
