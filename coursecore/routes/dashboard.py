"""
coursecore/routes/dashboard.py
Team progress rollups for brand dashboards
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from coursecore.schemas.common import StandardResponse
from coursecore.routes import get_services
from coursecore.services.registry import CoreServices

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/companies/{company_id}/progress", response_model=StandardResponse)
async def team_progress(
    company_id: str,
    location_id: Optional[str] = Query(None, alias="locationId"),
    services: CoreServices = Depends(get_services),
):
    summary = await services.aggregation.get_team_progress(company_id, location_id)
    return StandardResponse(message="Team progress loaded", data=summary.to_wire())
