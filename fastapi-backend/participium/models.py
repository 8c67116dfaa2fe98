from typing import Optional, List
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict
from pydantic import Field as PydanticField
from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field

from .constants import ReportStatus
from .roles import UserType


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    __tablename__ = "users"
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(sa_column_kwargs={"unique": True})
    email: Optional[str] = None
    name: Optional[str] = None
    surname: Optional[str] = None
    # Primitive type tag; granular municipal roles live in user_roles
    user_type: str = Field(default=UserType.CITIZEN.value)
    password_hash: Optional[str] = None
    mail_notifications: bool = Field(default=True)
    created_at: Optional[datetime] = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None


class UserRole(SQLModel, table=True):
    __tablename__ = "user_roles"
    user_id: int = Field(foreign_key="users.id", primary_key=True)
    role: str = Field(primary_key=True, index=True)
    created_at: Optional[datetime] = Field(default_factory=utcnow)


class Report(SQLModel, table=True):
    __tablename__ = "reports"
    id: Optional[int] = Field(default=None, primary_key=True)
    # NULL for anonymous reports, permanently
    user_id: Optional[int] = Field(default=None, foreign_key="users.id", index=True)
    latitude: float
    longitude: float
    title: str
    description: str
    category: str
    photos: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    status: str = Field(default=ReportStatus.PENDING.value, index=True)
    rejection_reason: Optional[str] = None
    technical_office: Optional[str] = None
    officer_id: Optional[int] = Field(default=None, foreign_key="users.id", index=True)
    external_maintainer_id: Optional[int] = Field(default=None, foreign_key="users.id", index=True)
    created_at: Optional[datetime] = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = Field(default_factory=utcnow)


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    report_id: Optional[int] = Field(default=None, foreign_key="reports.id")
    title: str
    message: str
    is_read: bool = Field(default=False)
    created_at: Optional[datetime] = Field(default_factory=utcnow)


class InternalComment(SQLModel, table=True):
    __tablename__ = "internal_comments"
    id: Optional[int] = Field(default=None, primary_key=True)
    report_id: int = Field(foreign_key="reports.id", index=True)
    author_id: int = Field(foreign_key="users.id")
    text: str
    created_at: Optional[datetime] = Field(default_factory=utcnow)


class Message(SQLModel, table=True):
    __tablename__ = "messages"
    id: Optional[int] = Field(default=None, primary_key=True)
    report_id: int = Field(foreign_key="reports.id", index=True)
    sender_id: int = Field(foreign_key="users.id")
    text: str
    created_at: Optional[datetime] = Field(default_factory=utcnow)


# --- Public shapes returned across the API boundary ---


class UserSummary(BaseModel):
    id: int
    username: str
    name: Optional[str] = None
    surname: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_user(cls, user: Optional[User]) -> Optional["UserSummary"]:
        if user is None:
            return None
        return cls(id=user.id, username=user.username, name=user.name, surname=user.surname, email=user.email)


class UserPublic(BaseModel):
    id: int
    username: str
    name: Optional[str] = None
    surname: Optional[str] = None
    email: Optional[str] = None
    user_type: str
    roles: List[str] = []
    mail_notifications: bool = True
    created_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User, roles) -> "UserPublic":
        return cls(
            id=user.id,
            username=user.username,
            name=user.name,
            surname=user.surname,
            email=user.email,
            user_type=user.user_type,
            roles=sorted(getattr(role, "value", role) for role in roles),
            mail_notifications=bool(user.mail_notifications),
            created_at=user.created_at,
        )


class ReportPublic(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    user_id: Optional[int] = PydanticField(default=None, alias="userId")
    latitude: float
    longitude: float
    title: str
    description: str
    category: str
    status: str
    rejection_reason: Optional[str] = None
    technical_office: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    photos: List[str] = []
    user: Optional[UserSummary] = None
    officer: Optional[UserSummary] = None
    external_maintainer: Optional[UserSummary] = PydanticField(default=None, alias="externalMaintainer")


class NotificationPublic(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    user_id: int = PydanticField(alias="userId")
    report_id: Optional[int] = PydanticField(default=None, alias="reportId")
    title: str
    message: str
    is_read: int
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Notification) -> "NotificationPublic":
        return cls(
            id=row.id,
            user_id=row.user_id,
            report_id=row.report_id,
            title=row.title,
            message=row.message,
            is_read=1 if row.is_read else 0,
            created_at=row.created_at,
        )


class CommentPublic(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    report_id: int = PydanticField(alias="reportId")
    author_id: int = PydanticField(alias="authorId")
    text: str
    created_at: Optional[datetime] = None
    author: Optional[UserSummary] = None


class MessagePublic(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    report_id: int = PydanticField(alias="reportId")
    sender_id: int = PydanticField(alias="senderId")
    text: str
    created_at: Optional[datetime] = None
    sender: Optional[UserSummary] = None
