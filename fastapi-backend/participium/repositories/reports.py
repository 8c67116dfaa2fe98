"""Report storage port and its SQLModel implementation.

Mutations after creation go through ``update_if``: a single ``UPDATE ...
WHERE id = :id AND <expected columns>`` statement. The caller learns whether
the row still matched what it observed; there is no read-then-write window.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Mapping, Optional, Protocol

from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..constants import NON_PUBLIC_STATUSES, ReportStatus
from ..models import Report, utcnow


@dataclass(frozen=True)
class BoundingBox:
    south: float
    north: float
    west: float
    east: float


class ReportStore(Protocol):
    async def create(self, report: Report) -> Report: ...

    async def get(self, report_id: int) -> Optional[Report]: ...

    async def list_by_status(self, status: ReportStatus, bbox: Optional[BoundingBox] = None) -> List[Report]: ...

    async def list_public(self, bbox: Optional[BoundingBox] = None) -> List[Report]: ...

    async def list_by_officer(self, officer_id: int) -> List[Report]: ...

    async def list_by_maintainer(self, maintainer_id: int) -> List[Report]: ...

    async def list_by_owner(self, user_id: int) -> List[Report]: ...

    async def update_if(self, report_id: int, expected: Mapping[str, Any], **changes: Any) -> Optional[Report]: ...


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class SqlReportStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, report: Report) -> Report:
        self.session.add(report)
        await self.session.commit()
        await self.session.refresh(report)
        return report

    async def get(self, report_id: int) -> Optional[Report]:
        return await self.session.get(Report, report_id, populate_existing=True)

    def _newest_first(self, statement):
        return statement.order_by(Report.created_at.desc(), Report.id.desc())

    def _within(self, statement, bbox: Optional[BoundingBox]):
        if bbox is None:
            return statement
        return statement.where(
            Report.latitude.between(bbox.south, bbox.north),
            Report.longitude.between(bbox.west, bbox.east),
        )

    async def _all(self, statement) -> List[Report]:
        result = await self.session.exec(self._newest_first(statement))
        return list(result.all())

    async def list_by_status(self, status: ReportStatus, bbox: Optional[BoundingBox] = None) -> List[Report]:
        statement = select(Report).where(Report.status == _plain(status))
        return await self._all(self._within(statement, bbox))

    async def list_public(self, bbox: Optional[BoundingBox] = None) -> List[Report]:
        hidden = [s.value for s in NON_PUBLIC_STATUSES]
        statement = select(Report).where(Report.status.not_in(hidden))
        return await self._all(self._within(statement, bbox))

    async def list_by_officer(self, officer_id: int) -> List[Report]:
        statement = select(Report).where(
            Report.officer_id == officer_id,
            Report.status != ReportStatus.REJECTED.value,
        )
        return await self._all(statement)

    async def list_by_maintainer(self, maintainer_id: int) -> List[Report]:
        statement = select(Report).where(
            Report.external_maintainer_id == maintainer_id,
            Report.status != ReportStatus.REJECTED.value,
        )
        return await self._all(statement)

    async def list_by_owner(self, user_id: int) -> List[Report]:
        return await self._all(select(Report).where(Report.user_id == user_id))

    async def update_if(self, report_id: int, expected: Mapping[str, Any], **changes: Any) -> Optional[Report]:
        """Apply ``changes`` only if every ``expected`` column still holds its value.

        Returns the refreshed report, or ``None`` when no row matched.
        """
        table = Report.__table__
        conditions = [table.c.id == report_id]
        for column, value in expected.items():
            value = _plain(value)
            conditions.append(table.c[column].is_(None) if value is None else table.c[column] == value)

        values = {column: _plain(value) for column, value in changes.items()}
        values.setdefault("updated_at", utcnow())

        conn = await self.session.connection()
        result = await conn.execute(update(table).where(*conditions).values(**values))
        # Commit in both branches: a rollback would expire instances the
        # caller already holds.
        await self.session.commit()
        if result.rowcount == 0:
            return None
        return await self.get(report_id)


__all__ = ["BoundingBox", "ReportStore", "SqlReportStore"]
