"""
coursecore/routes/progress.py
Course player completions and learner progress reads
"""
from fastapi import APIRouter, Depends

from coursecore.schemas.common import StandardResponse
from coursecore.schemas.progress import CompletionRequest
from coursecore.routes import get_services
from coursecore.services.registry import CoreServices

router = APIRouter(prefix="/progress", tags=["Progress"])


@router.post("/{user_id}/courses/{course_id}/complete", response_model=StandardResponse)
async def record_completion(
    user_id: str,
    course_id: str,
    request: CompletionRequest,
    services: CoreServices = Depends(get_services),
):
    record = await services.ledger.record_item_completion(user_id, course_id, request.item_index)
    return StandardResponse(message="Completion recorded", data=record.to_wire())


@router.get("/{user_id}/courses/{course_id}", response_model=StandardResponse)
async def read_progress(user_id: str, course_id: str, services: CoreServices = Depends(get_services)):
    record = await services.ledger.get_progress(user_id, course_id)
    return StandardResponse(message="Progress loaded", data=record.to_wire())


@router.get("/{user_id}/overall", response_model=StandardResponse)
async def read_overall(user_id: str, services: CoreServices = Depends(get_services)):
    summary = await services.aggregation.get_user_progress_summary(user_id)
    return StandardResponse(message="Overall progress loaded", data=summary.to_wire())
