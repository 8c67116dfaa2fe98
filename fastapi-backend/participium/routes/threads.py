"""Internal comment and message routes attached to a report."""

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from ..auth import get_current_actor
from ..authorization import Actor
from ..dependencies import get_comment_service, get_message_service
from ..models import CommentPublic, MessagePublic
from ..threads import CommentService, MessageService


router = APIRouter(prefix="/api/reports/{report_id}", tags=["threads"])


class TextRequest(BaseModel):
    text: Optional[str] = None


@router.get("/comments", response_model=List[CommentPublic])
async def list_comments(
    report_id: int,
    actor: Actor = Depends(get_current_actor),
    service: CommentService = Depends(get_comment_service),
):
    return await service.list_comments(report_id, actor)


@router.post("/comments", response_model=CommentPublic, status_code=status.HTTP_201_CREATED)
async def add_comment(
    report_id: int,
    payload: TextRequest,
    actor: Actor = Depends(get_current_actor),
    service: CommentService = Depends(get_comment_service),
):
    return await service.add_comment(report_id, actor, payload.text)


@router.get("/messages", response_model=List[MessagePublic])
async def list_messages(
    report_id: int,
    actor: Actor = Depends(get_current_actor),
    service: MessageService = Depends(get_message_service),
):
    return await service.list_messages(report_id, actor)


@router.post("/messages", response_model=MessagePublic, status_code=status.HTTP_201_CREATED)
async def send_message(
    report_id: int,
    payload: TextRequest,
    actor: Actor = Depends(get_current_actor),
    service: MessageService = Depends(get_message_service),
):
    return await service.send_message(report_id, actor, payload.text)
