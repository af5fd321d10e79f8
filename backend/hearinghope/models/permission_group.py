import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from hearinghope.auth.permissions import invalid_permissions
from hearinghope.database import Base
from hearinghope.models.user import _utcnow


class PermissionGroup(Base):
    """Named, reusable bundle of permissions assignable to users."""

    __tablename__ = "permission_groups"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    permissions: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    created_by: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL")
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utcnow, onupdate=_utcnow
    )

    @validates("permissions")
    def _validate_permissions(self, key, value):
        bad = invalid_permissions(value or [])
        if bad:
            raise ValueError(f"Invalid permission format: {', '.join(bad)}")
        return list(dict.fromkeys(value or []))
