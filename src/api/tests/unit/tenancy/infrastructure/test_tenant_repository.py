"""Unit tests for TenantDatabaseRepository with a mocked session."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from tenancy.domain.exceptions import TenantNotFoundError
from tenancy.domain.value_objects import (
    ConnectionConfig,
    DatabaseStatus,
    DatabaseType,
    TenantId,
    TenantState,
)
from tenancy.infrastructure.models import TenantModel
from tenancy.infrastructure.observability import TenantDatabaseRepositoryProbe
from tenancy.infrastructure.tenant_repository import TenantDatabaseRepository
from tenancy.ports.repositories import ITenantDatabaseRepository
from tests.unit.conftest import make_tenant

NOW = datetime(2026, 10, 19, 9, 0, tzinfo=UTC)


def _model(**overrides) -> TenantModel:
    values = dict(
        id="t-1",
        name="Acme Corp",
        slug="acme-corp",
        status="ACTIVE",
        database_type="NONE",
        database_status="NOT_CONFIGURED",
        database_name=None,
        database_host=None,
        database_port=None,
        database_user=None,
        database_password=None,
        database_ssl=None,
        database_connection_url=None,
        database_managed_by=None,
        database_migration_version=None,
        database_last_checked_at=None,
        database_last_error=None,
    )
    values.update(overrides)
    return TenantModel(**values)


def _result_with(model: TenantModel | None) -> MagicMock:
    result = MagicMock()
    result.scalar_one_or_none.return_value = model
    return result


def _result_with_all(models: list[TenantModel]) -> MagicMock:
    result = MagicMock()
    result.scalars.return_value.all.return_value = models
    return result


@pytest.fixture
def mock_session() -> MagicMock:
    session = MagicMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    return session


@pytest.fixture
def mock_probe() -> MagicMock:
    return MagicMock(spec=TenantDatabaseRepositoryProbe)


@pytest.fixture
def repository(mock_session, mock_probe) -> TenantDatabaseRepository:
    return TenantDatabaseRepository(session=mock_session, probe=mock_probe)


class TestProtocolCompliance:
    def test_implements_port(self, repository):
        assert isinstance(repository, ITenantDatabaseRepository)


class TestGetById:
    """Tests for loading one tenant."""

    @pytest.mark.asyncio
    async def test_maps_row_to_aggregate(self, repository, mock_session, mock_probe):
        mock_session.execute.return_value = _result_with(
            _model(
                database_status="READY",
                database_type="DEDICATED_MANAGED",
                database_name="EC_Acme_Corp",
                database_host="db",
                database_port=5432,
                database_ssl=True,
                database_connection_url="postgresql://u:p@db/EC_Acme_Corp",
                database_last_checked_at=NOW,
            )
        )

        tenant = await repository.get_by_id(TenantId(value="t-1"))

        assert tenant is not None
        assert tenant.id == TenantId(value="t-1")
        assert tenant.state == TenantState.ACTIVE
        assert tenant.database_status == DatabaseStatus.READY
        assert tenant.database_type == DatabaseType.DEDICATED_MANAGED
        assert tenant.config == ConnectionConfig(
            host="db",
            port=5432,
            ssl=True,
            connection_url="postgresql://u:p@db/EC_Acme_Corp",
        )
        assert tenant.last_checked_at == NOW
        assert tenant.is_provisioned is True
        mock_probe.tenant_retrieved.assert_called_once_with("t-1")

    @pytest.mark.asyncio
    async def test_missing_tenant_returns_none(
        self, repository, mock_session, mock_probe
    ):
        mock_session.execute.return_value = _result_with(None)

        assert await repository.get_by_id(TenantId(value="nope")) is None
        mock_probe.tenant_not_found.assert_called_once_with("nope")


class TestListing:
    """Tests for listing tenants."""

    @pytest.mark.asyncio
    async def test_list_all(self, repository, mock_session, mock_probe):
        mock_session.execute.return_value = _result_with_all(
            [_model(id="a", name="A"), _model(id="b", name="B")]
        )

        tenants = await repository.list_all()

        assert [t.id.value for t in tenants] == ["a", "b"]
        mock_probe.tenants_listed.assert_called_once_with(2)

    @pytest.mark.asyncio
    async def test_list_needing_provisioning_filters_in_sql(
        self, repository, mock_session
    ):
        mock_session.execute.return_value = _result_with_all([])

        await repository.list_needing_provisioning()

        stmt = mock_session.execute.await_args.args[0]
        compiled = str(stmt)
        assert "tenants.status" in compiled
        assert "tenants.database_status IN" in compiled


class TestSaveDatabaseState:
    """Tests for writing the database columns."""

    @pytest.mark.asyncio
    async def test_writes_database_columns_only(
        self, repository, mock_session, mock_probe
    ):
        model = _model()
        mock_session.execute.return_value = _result_with(model)
        tenant = make_tenant("t-1", "Renamed Elsewhere")
        tenant.mark_ready(
            "EC_Acme_Corp",
            ConnectionConfig(
                host="db",
                port=5432,
                user="u",
                password="p",
                connection_url="postgresql://u:p@db/EC_Acme_Corp",
            ),
            NOW,
        )

        await repository.save_database_state(tenant)

        assert model.database_status == "READY"
        assert model.database_type == "DEDICATED_MANAGED"
        assert model.database_name == "EC_Acme_Corp"
        assert model.database_user == "u"
        assert model.database_connection_url == "postgresql://u:p@db/EC_Acme_Corp"
        assert model.database_managed_by == "super_admin"
        assert model.database_last_checked_at == NOW
        # Identity belongs to tenant management
        assert model.name == "Acme Corp"
        mock_session.flush.assert_awaited_once()
        mock_probe.database_state_saved.assert_called_once_with("t-1", "READY")

    @pytest.mark.asyncio
    async def test_missing_row_raises(self, repository, mock_session):
        mock_session.execute.return_value = _result_with(None)

        with pytest.raises(TenantNotFoundError):
            await repository.save_database_state(make_tenant("gone"))
