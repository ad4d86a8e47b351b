"""SQLAlchemy ORM model for the tenants table.

The tenants table is owned by tenant management; this context maps the
identity columns read-only and writes the ``database_*`` columns.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import Base, TimestampMixin


class TenantModel(Base, TimestampMixin):
    """ORM model for tenants table."""

    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True
    )
    slug: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="ACTIVE", index=True
    )

    database_type: Mapped[str] = mapped_column(
        String(30), nullable=False, default="NONE"
    )
    database_status: Mapped[str] = mapped_column(
        String(30), nullable=False, default="NOT_CONFIGURED", index=True
    )
    database_name: Mapped[str | None] = mapped_column(String(63), nullable=True)
    database_host: Mapped[str | None] = mapped_column(String(255), nullable=True)
    database_port: Mapped[int | None] = mapped_column(Integer, nullable=True)
    database_user: Mapped[str | None] = mapped_column(String(255), nullable=True)
    database_password: Mapped[str | None] = mapped_column(String(255), nullable=True)
    database_ssl: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    database_connection_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    database_managed_by: Mapped[str | None] = mapped_column(String(50), nullable=True)
    database_migration_version: Mapped[str | None] = mapped_column(
        String(50), nullable=True
    )
    database_last_checked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    database_last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<TenantModel(id={self.id}, name={self.name}, "
            f"database_status={self.database_status})>"
        )
