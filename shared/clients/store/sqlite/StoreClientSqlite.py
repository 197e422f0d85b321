"""SQLite store on SQLAlchemy 2.0 async (aiosqlite driver).

STORE_SQLITE_URL takes any async SQLAlchemy URL, so the same client runs
against a file database in production and a temporary one in tests.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime

import pytz
from sqlalchemy import and_, delete, select, text, update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.store.sqlite.tables import (
    Base,
    ChatRow,
    ChunkRow,
    FilePermissionRow,
    FileRow,
    FolderRow,
    OrganizationRow,
    TeamMemberRow,
    TeamRow,
)
from shared.helper.HelperConfig import HelperConfig
from shared.models.access import Visibility
from shared.models.config import EnvConfig
from shared.models.records import (
    ORGANIZATION_ROOT_FOLDER_ID,
    ChatRecord,
    ChunkContext,
    ChunkRecord,
    FileGrant,
    FilePermission,
    FileRecord,
    FileStatus,
    FolderRecord,
    Organization,
    Team,
    TeamMember,
    TeamMemberStatus,
)


def _now() -> datetime:
    return datetime.now(pytz.utc)


class StoreClientSqlite(StoreClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._url = self.get_config_val("URL", default="sqlite+aiosqlite:///./knowledge.db", val_type="string")
        self._echo = self.get_config_val("ECHO", default=False, val_type="bool")
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Sqlite"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="URL", val_type="string", default="sqlite+aiosqlite:///./knowledge.db"),
        ]

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        """Create the engine and all tables that do not exist yet."""
        self._engine = create_async_engine(self._url, echo=self._echo)
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.logging.info("Store tables initialized at %s", self._url)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    async def is_healthy(self) -> bool:
        try:
            async with self._session() as session:
                await session.execute(text("SELECT 1"))
        except Exception as exc:
            self.logging.warning("Store healthcheck failed: %s", exc)
            return False
        return True

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on success and rolls back on exception."""
        if self._session_factory is None:
            raise RuntimeError("Store not initialised. Call boot() before using it.")
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    ##########################################
    ############### CONVERTER ################
    ##########################################

    @staticmethod
    def _to_file(row: FileRow, folder_name: str | None = None) -> FileRecord:
        record = FileRecord.model_validate(row, from_attributes=True)
        return record.model_copy(update={"folder_name": folder_name})

    @staticmethod
    def _to_folder(row: FolderRow) -> FolderRecord:
        return FolderRecord.model_validate(row, from_attributes=True)

    @staticmethod
    def _to_chunk(row: ChunkRow) -> ChunkRecord:
        return ChunkRecord.model_validate(row, from_attributes=True)

    ##########################################
    ######### ORGANIZATIONS & TEAMS ##########
    ##########################################

    async def create_organization(self, organization: Organization) -> Organization:
        async with self._session() as session:
            session.add(OrganizationRow(**organization.model_dump(), created_at=_now()))
        return organization

    async def create_team(self, team: Team) -> Team:
        async with self._session() as session:
            session.add(TeamRow(**team.model_dump(), created_at=_now()))
        return team

    async def get_team(self, team_id: str) -> Team | None:
        async with self._session() as session:
            row = await session.get(TeamRow, team_id)
            return Team.model_validate(row, from_attributes=True) if row else None

    async def list_active_team_ids(self, user_id: str, organization_id: str) -> list[str]:
        stmt = (
            select(TeamMemberRow.team_id)
            .join(TeamRow, TeamRow.id == TeamMemberRow.team_id)
            .where(
                TeamMemberRow.user_id == user_id,
                TeamMemberRow.status == TeamMemberStatus.ACTIVE.value,
                TeamRow.organization_id == organization_id,
            )
            .order_by(TeamMemberRow.team_id)
        )
        async with self._session() as session:
            return list((await session.execute(stmt)).scalars().all())

    async def get_active_membership(self, user_id: str, organization_id: str) -> TeamMember | None:
        stmt = (
            select(TeamMemberRow)
            .join(TeamRow, TeamRow.id == TeamMemberRow.team_id)
            .where(
                TeamMemberRow.user_id == user_id,
                TeamMemberRow.status == TeamMemberStatus.ACTIVE.value,
                TeamRow.organization_id == organization_id,
            )
            .limit(1)
        )
        async with self._session() as session:
            row = (await session.execute(stmt)).scalars().first()
            return TeamMember.model_validate(row, from_attributes=True) if row else None

    async def set_team_member_status(self, team_id: str, user_id: str, status: TeamMemberStatus) -> TeamMember:
        async with self._session() as session:
            row = await session.get(TeamMemberRow, (team_id, user_id))
            if row is None:
                row = TeamMemberRow(team_id=team_id, user_id=user_id)
                session.add(row)
            row.status = status.value
            row.updated_at = _now()
            if status == TeamMemberStatus.ACTIVE:
                row.joined_at = _now()
        return TeamMember(team_id=team_id, user_id=user_id, status=status)

    ##########################################
    ################ FOLDERS #################
    ##########################################

    async def create_folder(self, folder: FolderRecord) -> FolderRecord:
        async with self._session() as session:
            session.add(FolderRow(**folder.model_dump(mode="json", exclude={"deleted_at"}), created_at=_now()))
        return folder

    async def get_folder(self, folder_id: str, organization_id: str) -> FolderRecord | None:
        async with self._session() as session:
            row = await session.get(FolderRow, (folder_id, organization_id))
            return self._to_folder(row) if row else None

    async def ensure_organization_root(self, organization_id: str) -> FolderRecord:
        existing = await self.get_folder(ORGANIZATION_ROOT_FOLDER_ID, organization_id)
        if existing is not None:
            return existing
        root = FolderRecord(
            id=ORGANIZATION_ROOT_FOLDER_ID,
            name="Organization",
            organization_id=organization_id,
            visibility=Visibility.ORGANIZATION,
            owner_id=None,
        )
        self.logging.info("Creating organization root folder for %s", organization_id)
        return await self.create_folder(root)

    ##########################################
    ################# FILES ##################
    ##########################################

    async def create_file(self, file: FileRecord) -> FileRecord:
        values = file.model_dump(mode="json", exclude={"folder_name", "deleted_at"})
        async with self._session() as session:
            session.add(FileRow(**values, next_generation=file.current_generation, created_at=_now(), updated_at=_now()))
        return file

    async def get_file(self, file_id: str) -> FileRecord | None:
        stmt = (
            select(FileRow, FolderRow.name)
            .outerjoin(
                FolderRow,
                and_(FolderRow.id == FileRow.folder_id, FolderRow.organization_id == FileRow.organization_id),
            )
            .where(FileRow.id == file_id)
        )
        async with self._session() as session:
            result = (await session.execute(stmt)).first()
            if result is None:
                return None
            row, folder_name = result
            return self._to_file(row, folder_name)

    async def update_file_after_conversion(self, file_id: str, file_name: str, object_key: str, size: int, mime_type: str) -> None:
        stmt = (
            update(FileRow)
            .where(FileRow.id == file_id)
            .values(file_name=file_name, object_key=object_key, size=size, mime_type=mime_type, updated_at=_now())
        )
        async with self._session() as session:
            await session.execute(stmt)

    async def update_file_status(self, file_id: str, status: FileStatus, last_error: str | None = None) -> None:
        stmt = (
            update(FileRow)
            .where(FileRow.id == file_id)
            .values(status=status.value, last_error=last_error, updated_at=_now())
        )
        async with self._session() as session:
            await session.execute(stmt)

    async def record_ingest_attempt(self, file_id: str) -> int:
        async with self._session() as session:
            await session.execute(
                update(FileRow)
                .where(FileRow.id == file_id)
                .values(ingest_attempts=FileRow.ingest_attempts + 1, updated_at=_now())
            )
            attempts = (await session.execute(select(FileRow.ingest_attempts).where(FileRow.id == file_id))).scalar()
        return int(attempts or 0)

    async def reset_ingest_state(self, file_id: str) -> None:
        stmt = (
            update(FileRow)
            .where(FileRow.id == file_id)
            .values(status=FileStatus.UPLOADING.value, ingest_attempts=0, last_error=None, updated_at=_now())
        )
        async with self._session() as session:
            await session.execute(stmt)

    async def soft_delete_file(self, file_id: str) -> None:
        async with self._session() as session:
            await session.execute(update(FileRow).where(FileRow.id == file_id).values(deleted_at=_now(), updated_at=_now()))

    async def list_files_needing_ingest(self, organization_id: str | None = None, limit: int | None = None) -> list[FileRecord]:
        stmt = (
            select(FileRow, FolderRow.name)
            .outerjoin(
                FolderRow,
                and_(FolderRow.id == FileRow.folder_id, FolderRow.organization_id == FileRow.organization_id),
            )
            .where(
                FileRow.deleted_at.is_(None),
                FileRow.status.in_([FileStatus.UPLOADING.value, FileStatus.FAILED.value]),
            )
            .order_by(FileRow.created_at)
        )
        if organization_id:
            stmt = stmt.where(FileRow.organization_id == organization_id)
        if limit:
            stmt = stmt.limit(limit)
        async with self._session() as session:
            return [self._to_file(row, folder_name) for row, folder_name in (await session.execute(stmt)).all()]

    ##########################################
    ######### CHUNKS & GENERATIONS ###########
    ##########################################

    async def allocate_generation(self, file_id: str) -> int:
        async with self._session() as session:
            result = await session.execute(
                update(FileRow)
                .where(FileRow.id == file_id)
                .values(next_generation=FileRow.next_generation + 1)
            )
            if result.rowcount != 1:
                raise LookupError(f"File {file_id} does not exist.")
            generation = (await session.execute(select(FileRow.next_generation).where(FileRow.id == file_id))).scalar()
        return int(generation)

    async def insert_chunk(self, chunk: ChunkRecord) -> None:
        async with self._session() as session:
            session.add(ChunkRow(**chunk.model_dump(mode="json"), created_at=_now()))

    async def activate_generation(self, file_id: str, generation: int) -> bool:
        stmt = (
            update(FileRow)
            .where(FileRow.id == file_id, FileRow.current_generation < generation)
            .values(current_generation=generation, updated_at=_now())
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return result.rowcount == 1

    async def list_chunks(self, file_id: str, generation: int | None = None, before_generation: int | None = None) -> list[ChunkRecord]:
        stmt = select(ChunkRow).where(ChunkRow.file_id == file_id)
        if generation is not None:
            stmt = stmt.where(ChunkRow.generation == generation)
        if before_generation is not None:
            stmt = stmt.where(ChunkRow.generation < before_generation)
        stmt = stmt.order_by(ChunkRow.generation, ChunkRow.chunk_index)
        async with self._session() as session:
            return [self._to_chunk(row) for row in (await session.execute(stmt)).scalars().all()]

    async def delete_chunks(self, chunk_ids: list[str]) -> None:
        if not chunk_ids:
            return
        async with self._session() as session:
            await session.execute(delete(ChunkRow).where(ChunkRow.id.in_(list(chunk_ids))))

    async def get_chunk_contexts(self, chunk_ids: list[str]) -> list[ChunkContext]:
        if not chunk_ids:
            return []
        stmt = (
            select(ChunkRow, FileRow.file_name, FolderRow.name)
            .join(FileRow, FileRow.id == ChunkRow.file_id)
            .outerjoin(
                FolderRow,
                and_(FolderRow.id == FileRow.folder_id, FolderRow.organization_id == FileRow.organization_id),
            )
            .where(
                ChunkRow.id.in_(list(chunk_ids)),
                ChunkRow.generation == FileRow.current_generation,
                FileRow.deleted_at.is_(None),
                FolderRow.deleted_at.is_(None),
            )
        )
        async with self._session() as session:
            rows = (await session.execute(stmt)).all()
        return [
            ChunkContext(
                chunk_id=chunk.id,
                file_id=chunk.file_id,
                folder_name=folder_name or "",
                file_name=file_name,
                start_line=chunk.start_line,
                end_line=chunk.end_line,
                content=chunk.content,
            )
            for chunk, file_name, folder_name in rows
        ]

    ##########################################
    ################ GRANTS ##################
    ##########################################

    async def grant_file_permission(self, permission: FilePermission) -> None:
        async with self._session() as session:
            row = await session.get(FilePermissionRow, (permission.file_id, permission.user_id))
            if row is None:
                session.add(FilePermissionRow(**permission.model_dump(mode="json"), created_at=_now()))
            else:
                row.access_level = permission.access_level.value
                row.granted_by = permission.granted_by

    async def list_file_grants(self, user_id: str, organization_id: str) -> list[FileGrant]:
        stmt = (
            select(FilePermissionRow.access_level, FileRow)
            .join(FileRow, FileRow.id == FilePermissionRow.file_id)
            .where(
                FilePermissionRow.user_id == user_id,
                FileRow.organization_id == organization_id,
                FileRow.deleted_at.is_(None),
            )
        )
        async with self._session() as session:
            rows = (await session.execute(stmt)).all()
        return [
            FileGrant(
                file_id=file.id,
                owner_id=file.owner_id,
                organization_id=file.organization_id,
                visibility=file.visibility,
                team_id=file.team_id,
                access_level=access_level,
            )
            for access_level, file in rows
        ]

    ##########################################
    ################# CHATS ##################
    ##########################################

    async def record_chat(self, chat: ChatRecord) -> None:
        async with self._session() as session:
            session.add(ChatRow(**chat.model_dump(mode="json"), created_at=_now()))
