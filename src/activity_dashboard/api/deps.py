"""Request dependencies resolving the services configured at startup."""

from fastapi import HTTPException, Request

from ..services.events import EventBus
from ..services.query_service import ActivityQueryService


def get_query_service(request: Request) -> ActivityQueryService:
    service = getattr(request.app.state, "query_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Activity services not initialized")
    return service


def get_event_bus(request: Request) -> EventBus:
    bus = getattr(request.app.state, "event_bus", None)
    if bus is None:
        raise HTTPException(status_code=503, detail="Activity services not initialized")
    return bus
