"""Pytest configuration and fixtures."""

import logging
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio

from services.ingestion.IngestionService import IngestionService
from services.retrieval.QueryService import QueryService
from services.teams.MembershipService import MembershipService
from shared.clients.storage.local.StorageClientLocal import StorageClientLocal
from shared.clients.store.sqlite.StoreClientSqlite import StoreClientSqlite
from shared.clients.vector.partition.PartitionAdapterFactory import create_partition_adapter
from shared.helper.HelperConfig import HelperConfig
from shared.models.access import Principal
from shared.models.records import Team
from tests.harness.fakes import FakeConverter, FakeLLM, FakeNamespacedIndex
from tests.harness.seed import ORG_ID

# =============================================================================
# Configuration
# =============================================================================


@pytest.fixture
def helper_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> HelperConfig:
    """HelperConfig reading a throwaway environment (temp database and object root)."""
    monkeypatch.setenv("STORE_SQLITE_URL", f"sqlite+aiosqlite:///{tmp_path / 'knowledge.db'}")
    monkeypatch.setenv("STORAGE_LOCAL_ROOT_DIR", str(tmp_path / "objects"))
    monkeypatch.setenv("APP_API_KEY", "test-key")
    monkeypatch.setenv("INGEST_RETRY_DELAY", "0")
    monkeypatch.setenv("CHUNK_SIZE", "200")
    monkeypatch.setenv("CHUNK_OVERLAP", "20")
    return HelperConfig(logger=logging.getLogger("knowledge_bridge.tests"))


# =============================================================================
# Clients
# =============================================================================


@pytest_asyncio.fixture
async def store(helper_config: HelperConfig) -> AsyncGenerator[StoreClientSqlite, None]:
    client = StoreClientSqlite(helper_config=helper_config)
    await client.boot()
    yield client
    await client.close()


@pytest_asyncio.fixture
async def storage(helper_config: HelperConfig) -> AsyncGenerator[StorageClientLocal, None]:
    client = StorageClientLocal(helper_config=helper_config)
    await client.boot()
    yield client
    await client.close()


@pytest.fixture
def llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def converter() -> FakeConverter:
    return FakeConverter()


@pytest.fixture
def index() -> FakeNamespacedIndex:
    return FakeNamespacedIndex()


@pytest.fixture
def adapter(helper_config: HelperConfig, index: FakeNamespacedIndex):
    return create_partition_adapter(helper_config, index)


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def ingestion(helper_config, store, storage, converter, llm, adapter) -> IngestionService:
    return IngestionService(
        helper_config=helper_config,
        store_client=store,
        storage_client=storage,
        convert_client=converter,
        llm_client=llm,
        vector_adapter=adapter,
    )


@pytest.fixture
def query_service(helper_config, store, llm, adapter) -> QueryService:
    return QueryService(helper_config=helper_config, store_client=store, llm_client=llm, vector_adapter=adapter)


@pytest.fixture
def membership(helper_config, store) -> MembershipService:
    return MembershipService(helper_config=helper_config, store_client=store)


# =============================================================================
# Sample Data
# =============================================================================


@pytest.fixture
def alice() -> Principal:
    return Principal(user_id="alice", organization_id=ORG_ID)


@pytest.fixture
def bob() -> Principal:
    return Principal(user_id="bob", organization_id=ORG_ID)


@pytest_asyncio.fixture
async def red_team(store: StoreClientSqlite) -> Team:
    return await store.create_team(Team(id="team-red", organization_id=ORG_ID, name="Red", slug="red"))


@pytest_asyncio.fixture
async def blue_team(store: StoreClientSqlite) -> Team:
    return await store.create_team(Team(id="team-blue", organization_id=ORG_ID, name="Blue", slug="blue"))

