"""Login plus the static catalogues the clients render (categories, roles)."""

from typing import List

from fastapi import APIRouter, Body, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from .. import auth
from ..authorization import Actor
from ..constants import REPORT_CATEGORIES
from ..database import get_session
from ..dependencies import get_user_service
from ..errors import AuthenticationError
from ..models import UserPublic
from ..repositories.users import SqlUserStore
from ..roles import ROLE_METADATA, is_technical_role
from ..users import UserService


router = APIRouter(prefix="/api", tags=["sessions"])


@router.post("/sessions", response_model=dict)
async def login(
    username: str = Body(...),
    password: str = Body(...),
    session: AsyncSession = Depends(get_session),
):
    # username may also be the account email
    user = await auth.authenticate_user(username, password, session)
    if not user:
        raise AuthenticationError("Invalid username or password")
    roles = await SqlUserStore(session).roles_of(user.id)
    token = auth.create_access_token(subject=user.id, user_type=user.user_type)
    return {
        "access_token": token,
        "token_type": "bearer",
        "id": user.id,
        "user_type": user.user_type,
        "roles": sorted(role.value for role in roles),
    }


@router.get("/sessions/current", response_model=UserPublic)
async def current_session(
    actor: Actor = Depends(auth.get_current_actor),
    service: UserService = Depends(get_user_service),
):
    return await service.get_profile(actor)


@router.get("/categories", response_model=List[str])
async def list_categories():
    return REPORT_CATEGORIES


@router.get("/roles", response_model=List[dict])
async def list_roles():
    return [
        {"value": role.value, "label": meta["label"], "technical": is_technical_role(role)}
        for role, meta in ROLE_METADATA.items()
    ]
