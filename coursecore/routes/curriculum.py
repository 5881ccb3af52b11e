"""
coursecore/routes/curriculum.py
Curriculum composition, cascading item deletion and integrity checks
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from coursecore.core.item_reference import ItemRef
from coursecore.schemas.common import StandardResponse
from coursecore.schemas.progress import (
    CurriculumReplaceRequest,
    DanglingReferenceReport,
    ModulesReplaceRequest,
)
from coursecore.routes import get_services
from coursecore.services.registry import CoreServices

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Curriculum"])


@router.get("/courses/{course_id}/curriculum", response_model=StandardResponse)
async def get_curriculum(course_id: str, services: CoreServices = Depends(get_services)):
    view = await services.composer.get_curriculum(course_id)
    return StandardResponse(message="Curriculum loaded", data=view.to_wire())


@router.put("/courses/{course_id}/curriculum", response_model=StandardResponse)
async def replace_curriculum(
    course_id: str,
    request: CurriculumReplaceRequest,
    services: CoreServices = Depends(get_services),
):
    view = await services.composer.replace_curriculum(
        course_id, request.curriculum, request.module_assignments
    )
    return StandardResponse(message="Curriculum updated", data=view.to_wire())


@router.put("/courses/{course_id}/modules", response_model=StandardResponse)
async def replace_modules(
    course_id: str,
    request: ModulesReplaceRequest,
    services: CoreServices = Depends(get_services),
):
    view = await services.composer.update_modules(course_id, request.modules)
    return StandardResponse(message="Modules updated", data=view.to_wire())


@router.delete("/curriculum-items/{item_ref}", response_model=StandardResponse)
async def delete_curriculum_item(item_ref: str, services: CoreServices = Depends(get_services)):
    """Remove the item from every curriculum, then soft-delete it."""
    result = await services.cleanup.delete_item(ItemRef.parse(item_ref))
    return StandardResponse(
        message=f"Deleted {result.reference} and cleaned {len(result.courses_updated)} course(s)",
        data=result.to_wire(),
    )


@router.get("/integrity/dangling-references", response_model=StandardResponse)
async def dangling_references(
    course_id: Optional[str] = Query(None, alias="courseId"),
    services: CoreServices = Depends(get_services),
):
    reports = await services.composer.find_dangling_references(course_id)
    return StandardResponse(
        message=f"{len(reports)} course(s) with dangling references",
        data=[report.to_wire() for report in reports],
    )


@router.post("/integrity/repair", response_model=StandardResponse)
async def repair_dangling_references(
    reports: Optional[List[DanglingReferenceReport]] = None,
    services: CoreServices = Depends(get_services),
):
    """Repair the given reports, or everything currently dangling when none are sent."""
    if not reports:
        reports = await services.composer.find_dangling_references()
    results = await services.cleanup.repair(reports)
    repaired = [result for result in results if result.courses_updated]
    logger.info(f"Integrity repair touched {len(repaired)} reference(s)")
    return StandardResponse(
        message=f"Repaired {len(repaired)} reference(s)",
        data=[result.to_wire() for result in results],
    )
