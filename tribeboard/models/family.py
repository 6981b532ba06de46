from typing import TYPE_CHECKING
from sqlalchemy import String, DateTime, ForeignKey, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship
from uuid import uuid4
from ..db.base_class import Base
from . import utcnow

if TYPE_CHECKING:
    from .user import User
    from .family_member import FamilyMember

class Family(Base):
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name: Mapped[str] = mapped_column(String(50), index=True, nullable=False)
    # canonical uppercase family code
    code: Mapped[str] = mapped_column(String(8), unique=True, index=True, nullable=False)
    created_by_user_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("user.id", ondelete="SET NULL"))
    created_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    needs_sync: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    last_synced_at: Mapped["DateTime | None"] = mapped_column(DateTime(timezone=True))

    created_by: Mapped["User"] = relationship(back_populates="created_families")
    members: Mapped[list["FamilyMember"]] = relationship(back_populates="family", cascade="all,delete-orphan")
