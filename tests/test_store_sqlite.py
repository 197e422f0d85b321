"""Tests for the SQLite store: generations, hydration, grants and teams."""

import pytest
from sqlalchemy.exc import IntegrityError

from shared.clients.store.sqlite.StoreClientSqlite import StoreClientSqlite
from shared.models.access import Visibility
from shared.models.records import (
    ORGANIZATION_ROOT_FOLDER_ID,
    ChatRecord,
    ChunkRecord,
    FileAccessLevel,
    FilePermission,
    FileStatus,
    Organization,
    Team,
    TeamMemberStatus,
)
from tests.harness.seed import OTHER_ORG_ID, ORG_ID, seed_folder, seed_text_file


def chunk(file, chunk_id: str, generation: int, index: int = 0) -> ChunkRecord:
    return ChunkRecord(
        id=chunk_id,
        file_id=file.id,
        folder_id=file.folder_id,
        organization_id=file.organization_id,
        owner_id=file.owner_id,
        team_id=file.team_id,
        visibility=file.visibility,
        chunk_index=index,
        start_line=index + 1,
        end_line=index + 2,
        content=f"content {chunk_id}",
        generation=generation,
    )


class TestFiles:
    """Tests for file rows and ingest bookkeeping."""

    @pytest.mark.asyncio
    async def test_get_file_joins_folder_name(self, store: StoreClientSqlite, storage) -> None:
        folder = await seed_folder(store, "alice", name="Research")
        await seed_text_file(store, storage, folder, "alice", "hello")

        file = await store.get_file("file-1")

        assert file.folder_name == "Research"
        assert file.status == FileStatus.UPLOADING
        assert file.current_generation == 0

    @pytest.mark.asyncio
    async def test_attempts_and_reset(self, store: StoreClientSqlite, storage) -> None:
        folder = await seed_folder(store, "alice")
        await seed_text_file(store, storage, folder, "alice", "hello")

        assert await store.record_ingest_attempt("file-1") == 1
        assert await store.record_ingest_attempt("file-1") == 2
        await store.update_file_status("file-1", FileStatus.FAILED, last_error="boom")
        assert [f.id for f in await store.list_files_needing_ingest()] == ["file-1"]

        await store.reset_ingest_state("file-1")
        file = await store.get_file("file-1")
        assert (file.status, file.ingest_attempts, file.last_error) == (FileStatus.UPLOADING, 0, None)

    @pytest.mark.asyncio
    async def test_ready_and_deleted_files_need_no_ingest(self, store: StoreClientSqlite, storage) -> None:
        folder = await seed_folder(store, "alice")
        await seed_text_file(store, storage, folder, "alice", "a", file_id="ready")
        await seed_text_file(store, storage, folder, "alice", "b", file_id="gone")
        await seed_text_file(store, storage, folder, "alice", "c", file_id="waiting")
        await store.update_file_status("ready", FileStatus.READY)
        await store.soft_delete_file("gone")

        waiting = await store.list_files_needing_ingest(organization_id=ORG_ID)

        assert [f.id for f in waiting] == ["waiting"]
        assert await store.list_files_needing_ingest(organization_id=OTHER_ORG_ID) == []


class TestGenerations:
    """Tests for generation allocation and the compare-and-set switch."""

    @pytest.mark.asyncio
    async def test_allocation_is_monotonic(self, store: StoreClientSqlite, storage) -> None:
        folder = await seed_folder(store, "alice")
        await seed_text_file(store, storage, folder, "alice", "hello")

        assert [await store.allocate_generation("file-1") for _ in range(3)] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_allocation_for_missing_file_fails(self, store: StoreClientSqlite) -> None:
        with pytest.raises(LookupError):
            await store.allocate_generation("missing")

    @pytest.mark.asyncio
    async def test_activation_never_moves_backwards(self, store: StoreClientSqlite, storage) -> None:
        folder = await seed_folder(store, "alice")
        await seed_text_file(store, storage, folder, "alice", "hello")
        older = await store.allocate_generation("file-1")
        newer = await store.allocate_generation("file-1")

        assert await store.activate_generation("file-1", newer) is True
        assert await store.activate_generation("file-1", older) is False
        assert (await store.get_file("file-1")).current_generation == newer

    @pytest.mark.asyncio
    async def test_hydration_returns_current_generation_only(self, store: StoreClientSqlite, storage) -> None:
        folder = await seed_folder(store, "alice", name="Research")
        file = await seed_text_file(store, storage, folder, "alice", "hello", file_name="paper.txt")
        await store.insert_chunk(chunk(file, "old", generation=1))
        await store.insert_chunk(chunk(file, "new", generation=2))
        await store.activate_generation(file.id, 2)

        contexts = await store.get_chunk_contexts(["old", "new", "unknown"])

        assert [c.chunk_id for c in contexts] == ["new"]
        assert contexts[0].folder_name == "Research"
        assert contexts[0].file_name == "paper.txt"

    @pytest.mark.asyncio
    async def test_hydration_skips_deleted_files(self, store: StoreClientSqlite, storage) -> None:
        folder = await seed_folder(store, "alice")
        file = await seed_text_file(store, storage, folder, "alice", "hello")
        await store.insert_chunk(chunk(file, "c1", generation=1))
        await store.activate_generation(file.id, 1)
        await store.soft_delete_file(file.id)

        assert await store.get_chunk_contexts(["c1"]) == []

    @pytest.mark.asyncio
    async def test_list_chunks_by_generation(self, store: StoreClientSqlite, storage) -> None:
        folder = await seed_folder(store, "alice")
        file = await seed_text_file(store, storage, folder, "alice", "hello")
        for generation in (1, 2, 3):
            await store.insert_chunk(chunk(file, f"g{generation}", generation=generation))

        assert [c.id for c in await store.list_chunks(file.id, generation=2)] == ["g2"]
        assert [c.id for c in await store.list_chunks(file.id, before_generation=3)] == ["g1", "g2"]

        await store.delete_chunks(["g1", "g2"])
        assert [c.id for c in await store.list_chunks(file.id)] == ["g3"]


class TestFoldersAndGrants:
    """Tests for folders, the organization root and per-file grants."""

    @pytest.mark.asyncio
    async def test_each_organization_gets_its_own_root(self, store: StoreClientSqlite) -> None:
        acme_root = await store.ensure_organization_root(ORG_ID)
        globex_root = await store.ensure_organization_root(OTHER_ORG_ID)
        again = await store.ensure_organization_root(ORG_ID)

        assert acme_root.id == globex_root.id == again.id == ORGANIZATION_ROOT_FOLDER_ID
        assert acme_root.owner_id is None
        assert (await store.get_folder(ORGANIZATION_ROOT_FOLDER_ID, OTHER_ORG_ID)).organization_id == OTHER_ORG_ID

    @pytest.mark.asyncio
    async def test_grants_are_upserted_and_scoped_to_organization(self, store: StoreClientSqlite, storage) -> None:
        folder = await seed_folder(store, "alice")
        await seed_text_file(store, storage, folder, "alice", "hello")
        foreign = await seed_folder(store, "zed", organization_id=OTHER_ORG_ID)
        await seed_text_file(store, storage, foreign, "zed", "hi", file_id="file-foreign")

        await store.grant_file_permission(FilePermission(file_id="file-1", user_id="bob", access_level=FileAccessLevel.VIEWER))
        await store.grant_file_permission(FilePermission(file_id="file-1", user_id="bob", access_level=FileAccessLevel.EDITOR))
        await store.grant_file_permission(FilePermission(file_id="file-foreign", user_id="bob", access_level=FileAccessLevel.VIEWER))

        grants = await store.list_file_grants("bob", ORG_ID)

        assert len(grants) == 1
        assert grants[0].file_id == "file-1"
        assert grants[0].access_level == FileAccessLevel.EDITOR
        assert grants[0].visibility == Visibility.PERSONAL
        assert grants[0].owner_id == "alice"


class TestTeamsAndChats:
    """Tests for memberships and chat records."""

    @pytest.mark.asyncio
    async def test_organization_slugs_are_unique(self, store: StoreClientSqlite) -> None:
        acme = await store.create_organization(Organization(id=ORG_ID, slug="acme", name="Acme"))

        assert acme.slug == "acme"
        with pytest.raises(IntegrityError):
            await store.create_organization(Organization(id=OTHER_ORG_ID, slug="acme", name="Acme Copy"))
        await store.create_organization(Organization(id=OTHER_ORG_ID, slug="globex", name="Globex"))

    @pytest.mark.asyncio
    async def test_active_team_ids_follow_status(self, store: StoreClientSqlite) -> None:
        await store.create_team(Team(id="team-red", organization_id=ORG_ID, name="Red", slug="red"))
        await store.create_team(Team(id="team-x", organization_id=OTHER_ORG_ID, name="X", slug="x"))

        await store.set_team_member_status("team-red", "alice", TeamMemberStatus.ACTIVE)
        await store.set_team_member_status("team-x", "alice", TeamMemberStatus.ACTIVE)
        assert await store.list_active_team_ids("alice", ORG_ID) == ["team-red"]

        await store.set_team_member_status("team-red", "alice", TeamMemberStatus.REMOVED)
        assert await store.list_active_team_ids("alice", ORG_ID) == []
        assert await store.get_active_membership("alice", ORG_ID) is None

    @pytest.mark.asyncio
    async def test_record_chat(self, store: StoreClientSqlite) -> None:
        await store.record_chat(
            ChatRecord(
                id="chat-1",
                user_id="alice",
                organization_id=ORG_ID,
                question="q",
                answer="a",
                citations=[{"folder": "Docs", "file": "a.txt", "lines": [1, 2]}],
                scope="all",
            )
        )

        assert await store.is_healthy()
