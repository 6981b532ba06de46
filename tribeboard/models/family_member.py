from __future__ import annotations
from typing import TYPE_CHECKING
from enum import StrEnum
from sqlalchemy import String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from uuid import uuid4
from ..db.base_class import Base
from . import utcnow

if TYPE_CHECKING:
    from .user import User
    from .family import Family

class MemberRole(StrEnum):
    PARENT_ADMIN = "PARENT_ADMIN"
    ADULT = "ADULT"
    KID = "KID"
    VISITOR = "VISITOR"

class MembershipStatus(StrEnum):
    ACTIVE = "ACTIVE"
    INVITED = "INVITED"
    REMOVED = "REMOVED"

class FamilyMember(Base):
    __table_args__ = (UniqueConstraint("user_id", "family_id", name="uq_member_user_family"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    family_id: Mapped[str] = mapped_column(String(36), ForeignKey("family.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("user.id", ondelete="CASCADE"), index=True)
    role: Mapped[MemberRole] = mapped_column(default=MemberRole.ADULT)
    status: Mapped[MembershipStatus] = mapped_column(default=MembershipStatus.ACTIVE, index=True)
    display_name: Mapped[str | None] = mapped_column(String(30))
    created_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    role_changed_at: Mapped["DateTime | None"] = mapped_column(DateTime(timezone=True))

    user: Mapped["User"] = relationship(back_populates="memberships")
    family: Mapped["Family"] = relationship(back_populates="members")
