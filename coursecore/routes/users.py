"""
coursecore/routes/users.py
Employees and their course assignments
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from coursecore.errors import ErrorCode, NotFoundError
from coursecore.schemas.common import StandardResponse
from coursecore.schemas.user import CourseAssignmentRequest, UserCreate, UserRead, UserUpdate
from coursecore.routes import get_services
from coursecore.services.registry import CoreServices

router = APIRouter(prefix="/users", tags=["Users"])


async def _read(services: CoreServices, user) -> dict:
    read = UserRead.model_validate(user)
    read.course_progress = await services.ledger.get_course_progress_map(user.id)
    return read.to_wire()


@router.post("", response_model=StandardResponse, status_code=201)
async def create_user(request: UserCreate, services: CoreServices = Depends(get_services)):
    user = await services.users.create_user(request)
    return StandardResponse(message="User created", data=UserRead.model_validate(user).to_wire())


@router.get("", response_model=StandardResponse)
async def list_users(
    company_id: Optional[str] = Query(None, alias="companyId"),
    location_id: Optional[str] = Query(None, alias="locationId"),
    services: CoreServices = Depends(get_services),
):
    users = await services.users.list_users(company_id, location_id)
    return StandardResponse(
        message=f"{len(users)} user(s)",
        data=[UserRead.model_validate(user).to_wire() for user in users],
    )


@router.get("/{user_id}", response_model=StandardResponse)
async def get_user(user_id: str, services: CoreServices = Depends(get_services)):
    user = await services.users.get_user(user_id)
    if user is None:
        raise NotFoundError("User", user_id, code=ErrorCode.USER_NOT_FOUND)
    return StandardResponse(message="User loaded", data=await _read(services, user))


@router.patch("/{user_id}", response_model=StandardResponse)
async def update_user(user_id: str, request: UserUpdate, services: CoreServices = Depends(get_services)):
    user = await services.users.update_user(user_id, request)
    return StandardResponse(message="User updated", data=UserRead.model_validate(user).to_wire())


@router.delete("/{user_id}", response_model=StandardResponse)
async def delete_user(user_id: str, services: CoreServices = Depends(get_services)):
    await services.users.delete_user(user_id)
    return StandardResponse(message="User deleted")


@router.post("/{user_id}/courses", response_model=StandardResponse)
async def assign_courses(
    user_id: str,
    request: CourseAssignmentRequest,
    services: CoreServices = Depends(get_services),
):
    user = await services.users.assign_courses(user_id, request.course_ids)
    return StandardResponse(message="Courses assigned", data=await _read(services, user))


@router.post("/{user_id}/courses/remove", response_model=StandardResponse)
async def unassign_courses(
    user_id: str,
    request: CourseAssignmentRequest,
    services: CoreServices = Depends(get_services),
):
    user = await services.users.unassign_courses(user_id, request.course_ids)
    return StandardResponse(message="Courses unassigned", data=await _read(services, user))
