"""Report routes: creation, review, delegation, assignee updates and listings."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field

from ..auth import get_current_actor, get_optional_actor
from ..authorization import Actor
from ..dependencies import get_lifecycle
from ..errors import ValidationError
from ..lifecycle import ReportLifecycleEngine
from ..models import ReportPublic
from ..repositories.reports import BoundingBox


router = APIRouter(prefix="/api/reports", tags=["reports"])


class ReportCreateRequest(BaseModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    photos: Optional[List[str]] = None
    anonymous: bool = False


class ReviewRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: Optional[str] = None
    explanation: Optional[str] = None
    technical_office: Optional[str] = Field(default=None, alias="technicalOffice")


class ExternalMaintainerRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    external_maintainer_id: int = Field(alias="externalMaintainerId")


class StatusUpdateRequest(BaseModel):
    status: Optional[str] = None


def _bounding_box(
    south: Optional[float] = Query(None),
    north: Optional[float] = Query(None),
    west: Optional[float] = Query(None),
    east: Optional[float] = Query(None),
) -> Optional[BoundingBox]:
    values = (south, north, west, east)
    if all(v is None for v in values):
        return None
    if any(v is None for v in values):
        raise ValidationError("Bounding box needs south, north, west and east")
    return BoundingBox(south=south, north=north, west=west, east=east)


@router.post("", response_model=ReportPublic, status_code=status.HTTP_201_CREATED)
async def create_report(
    payload: ReportCreateRequest,
    actor: Optional[Actor] = Depends(get_optional_actor),
    engine: ReportLifecycleEngine = Depends(get_lifecycle),
):
    return await engine.create_report(
        actor,
        latitude=payload.latitude,
        longitude=payload.longitude,
        title=payload.title,
        description=payload.description,
        category=payload.category,
        photos=payload.photos,
        anonymous=payload.anonymous,
    )


@router.get("", response_model=List[ReportPublic])
async def list_reports_by_status(
    status: str = Query(...),
    bbox: Optional[BoundingBox] = Depends(_bounding_box),
    actor: Actor = Depends(get_current_actor),
    engine: ReportLifecycleEngine = Depends(get_lifecycle),
):
    return await engine.list_reports_by_status(actor, status, bbox)


@router.get("/public", response_model=List[ReportPublic])
async def list_public_reports(
    bbox: Optional[BoundingBox] = Depends(_bounding_box),
    engine: ReportLifecycleEngine = Depends(get_lifecycle),
):
    return await engine.list_public_reports(bbox)


@router.get("/mine", response_model=List[ReportPublic])
async def list_my_reports(
    actor: Actor = Depends(get_current_actor),
    engine: ReportLifecycleEngine = Depends(get_lifecycle),
):
    return await engine.list_reports_for_owner(actor)


@router.get("/assigned", response_model=List[ReportPublic])
async def list_assigned_reports(
    actor: Actor = Depends(get_current_actor),
    engine: ReportLifecycleEngine = Depends(get_lifecycle),
):
    return await engine.list_reports_for_officer(actor)


@router.get("/delegated", response_model=List[ReportPublic])
async def list_delegated_reports(
    actor: Actor = Depends(get_current_actor),
    engine: ReportLifecycleEngine = Depends(get_lifecycle),
):
    return await engine.list_reports_for_maintainer(actor)


@router.get("/{report_id}", response_model=ReportPublic)
async def get_report(report_id: int, engine: ReportLifecycleEngine = Depends(get_lifecycle)):
    return await engine.get_report(report_id)


@router.put("/{report_id}/review", response_model=ReportPublic)
async def review_report(
    report_id: int,
    payload: ReviewRequest,
    actor: Actor = Depends(get_current_actor),
    engine: ReportLifecycleEngine = Depends(get_lifecycle),
):
    return await engine.review(
        report_id,
        actor,
        payload.status,
        explanation=payload.explanation,
        technical_office=payload.technical_office,
    )


@router.put("/{report_id}/external-maintainer", response_model=ReportPublic)
async def assign_external_maintainer(
    report_id: int,
    payload: ExternalMaintainerRequest,
    actor: Actor = Depends(get_current_actor),
    engine: ReportLifecycleEngine = Depends(get_lifecycle),
):
    return await engine.assign_external_maintainer(report_id, actor, payload.external_maintainer_id)


@router.put("/{report_id}/status", response_model=ReportPublic)
async def update_report_status(
    report_id: int,
    payload: StatusUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    engine: ReportLifecycleEngine = Depends(get_lifecycle),
):
    return await engine.update_assignee_status(report_id, actor, payload.status)
