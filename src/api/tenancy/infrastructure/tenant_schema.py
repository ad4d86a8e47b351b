"""Schema of every tenant database.

Tenant tables live on their own declarative base so the core alembic
environment never sees them. The applier creates missing tables only, so
re-running it against a partially provisioned database is safe.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, MetaData, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from infrastructure.database.models import NAMING_CONVENTION, TimestampMixin, utc_now
from tenancy.infrastructure.observability import (
    DatabaseAdministratorProbe,
    DefaultDatabaseAdministratorProbe,
)
from tenancy.ports.protocols import TenantDatabaseHandle


class TenantSchemaBase(DeclarativeBase):
    """Base class for tables inside tenant databases."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class TenantSettingModel(TenantSchemaBase, TimestampMixin):
    """Per-tenant key/value settings."""

    __tablename__ = "tenant_settings"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[dict | None] = mapped_column(JSON, nullable=True)


class AuditLogModel(TenantSchemaBase):
    """Append-only audit trail of changes made inside the tenant."""

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor: Mapped[str | None] = mapped_column(String(255), nullable=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    entity_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), insert_default=utc_now, nullable=False
    )


class MetadataSchemaApplier:
    """SchemaApplier running ``metadata.create_all`` through a tenant handle."""

    def __init__(
        self,
        metadata: MetaData | None = None,
        probe: DatabaseAdministratorProbe | None = None,
    ):
        self._metadata = metadata if metadata is not None else TenantSchemaBase.metadata
        self._probe = probe or DefaultDatabaseAdministratorProbe()

    async def apply(self, handle: TenantDatabaseHandle) -> None:
        async with handle.engine.begin() as conn:
            await conn.run_sync(self._metadata.create_all, checkfirst=True)
        self._probe.schema_applied(len(self._metadata.tables))
