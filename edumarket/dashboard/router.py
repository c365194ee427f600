"""Educator dashboard API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status

from edumarket.auth.dependencies import EducatorUser

from .schemas import (
    DashboardResponse,
    EnrolledStudentListResponse,
    EnrolledStudentResponse,
)
from .service import DashboardService


router = APIRouter(prefix="/v1/educator", tags=["educator"])


async def get_dashboard_service(request: Request) -> DashboardService:
    """Get dashboard service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "dashboard_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Dashboard service not available",
        )
    return app_state.dashboard_service


DashboardServiceDep = Annotated[DashboardService, Depends(get_dashboard_service)]


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="Educator dashboard",
)
async def educator_dashboard(
    dashboard_service: DashboardServiceDep,
    user: EducatorUser,
) -> DashboardResponse:
    """Total earnings, course count and enrolled students."""
    data = await dashboard_service.educator_dashboard(user.user_id)
    return DashboardResponse.from_data(data)


@router.get(
    "/enrolled-students",
    response_model=EnrolledStudentListResponse,
    summary="Enrolled students with purchase date",
)
async def enrolled_students(
    dashboard_service: DashboardServiceDep,
    user: EducatorUser,
) -> EnrolledStudentListResponse:
    """One row per completed purchase of the educator's courses."""
    rows = await dashboard_service.enrolled_students(user.user_id)
    return EnrolledStudentListResponse(
        items=[EnrolledStudentResponse.from_row(row) for row in rows],
        total=len(rows),
    )
