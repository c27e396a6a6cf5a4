"""Admin API endpoints feeding the activity dashboard charts."""

import logging
from datetime import date
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from ..exceptions import DateRangeError, StorageError
from ..services.query_service import ActivityQueryService, DashboardData
from .deps import get_query_service

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request / response schemas
# ---------------------------------------------------------------------------

class DateRangeRequest(BaseModel):
    start_date: Optional[Any] = None
    end_date: Optional[Any] = None


class LoginPoint(BaseModel):
    activity_date: date
    total: int


class BarRow(BaseModel):
    user_id: int
    activity_type: str
    total: int


class BarSeriesItem(BaseModel):
    user_id: int
    post_total: int
    comment_total: int


class DashboardPayload(BaseModel):
    start_date: date
    end_date: date
    login_data: List[LoginPoint]
    bar_data: List[BarRow]
    bar_series: List[BarSeriesItem]


class DashboardResponse(BaseModel):
    success: bool = True
    data: DashboardPayload


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "data": message})


def _to_payload(data: DashboardData) -> DashboardPayload:
    return DashboardPayload(
        start_date=data.start_date,
        end_date=data.end_date,
        login_data=[
            LoginPoint(activity_date=p.activity_date, total=p.total)
            for p in data.login_series
        ],
        bar_data=[
            BarRow(user_id=r.user_id, activity_type=r.activity_type.value, total=r.total)
            for r in data.bar_rows
        ],
        bar_series=[
            BarSeriesItem(
                user_id=s.user_id,
                post_total=s.post_total,
                comment_total=s.comment_total,
            )
            for s in data.bar_series
        ],
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/activity/data", response_model=DashboardResponse)
async def fetch_activity_data(
    body: Optional[DateRangeRequest] = None,
    service: ActivityQueryService = Depends(get_query_service),
):
    """Return login and post/comment chart data.

    Missing bounds select the trailing window ending today. The bar chart
    data always covers the current month.
    """
    body = body or DateRangeRequest()
    try:
        data = await service.get_dashboard_data(body.start_date, body.end_date)
    except DateRangeError as e:
        return _error_response(400, str(e))
    except StorageError as e:
        logger.error("Dashboard query failed: %s", e)
        return _error_response(503, "Activity data is temporarily unavailable.")

    return DashboardResponse(data=_to_payload(data))


@router.get("/activity/export.csv")
async def export_activity_csv(
    start_date: Optional[str] = Query(default=None),
    end_date: Optional[str] = Query(default=None),
    service: ActivityQueryService = Depends(get_query_service),
):
    """Download the login series as CSV."""
    try:
        content = await service.export_login_csv(start_date, end_date)
    except DateRangeError as e:
        return _error_response(400, str(e))
    except StorageError as e:
        logger.error("Login CSV export failed: %s", e)
        return _error_response(503, "Activity data is temporarily unavailable.")

    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="login_data.csv"'},
    )
