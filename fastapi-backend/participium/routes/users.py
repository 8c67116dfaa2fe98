"""User registration, staff management and profile routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field

from ..auth import get_current_actor
from ..authorization import Actor
from ..dependencies import get_user_service
from ..models import UserPublic
from ..roles import UserType
from ..users import UserService


router = APIRouter(prefix="/api/users", tags=["users"])


class RegisterRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    surname: Optional[str] = None


class AdminUserCreateRequest(RegisterRequest):
    model_config = ConfigDict(populate_by_name=True)

    user_type: str = Field(default=UserType.MUNICIPALITY_USER.value, alias="type")
    roles: List[str] = []


class RoleAssignmentRequest(BaseModel):
    role: Optional[str] = None


class ProfileUpdateRequest(BaseModel):
    mail_notifications: Optional[bool] = None
    email: Optional[str] = None
    name: Optional[str] = None
    surname: Optional[str] = None


@router.post("", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, service: UserService = Depends(get_user_service)):
    return await service.register_citizen(**payload.model_dump())


@router.post("/admin", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
async def create_user_as_admin(
    payload: AdminUserCreateRequest,
    actor: Actor = Depends(get_current_actor),
    service: UserService = Depends(get_user_service),
):
    return await service.create_user_as_admin(actor, **payload.model_dump())


@router.get("/municipality", response_model=List[UserPublic])
async def list_municipality_users(
    role: Optional[str] = Query(None),
    actor: Actor = Depends(get_current_actor),
    service: UserService = Depends(get_user_service),
):
    return await service.list_municipality_users(actor, role)


@router.put("/{user_id}/roles", response_model=UserPublic)
async def assign_role(
    user_id: int,
    payload: RoleAssignmentRequest,
    actor: Actor = Depends(get_current_actor),
    service: UserService = Depends(get_user_service),
):
    return await service.assign_role(actor, user_id, payload.role)


@router.put("/{user_id}", response_model=UserPublic)
async def update_profile(
    user_id: int,
    payload: ProfileUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    service: UserService = Depends(get_user_service),
):
    return await service.update_profile(actor, user_id, **payload.model_dump())
