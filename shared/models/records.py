"""Pydantic models for the rows exchanged with the relational store.

Hierarchy:
  Organization, Team, TeamMember  : scoping units.
  FolderRecord, FileRecord        : user content, carrying the visibility scope.
  ChunkRecord / ChunkContext      : line-addressable segments and their hydrated form.
  FilePermission / FileGrant      : explicit per-file access on top of visibility.
  ChatRecord                      : persisted question/answer pairs.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, model_validator

from shared.models.access import Visibility

ORGANIZATION_ROOT_FOLDER_ID = "public-root"


class FileStatus(str, Enum):
    UPLOADING = "uploading"
    READY = "ready"
    FAILED = "failed"


class TeamMemberStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    REMOVED = "removed"


class FileAccessLevel(str, Enum):
    VIEWER = "viewer"
    EDITOR = "editor"


class ScopedRecord(BaseModel):
    """Common visibility scope of folders, files and chunks.

    Enforces the team invariant: visibility = team requires a team id.
    """

    organization_id: str
    visibility: Visibility
    owner_id: str | None = None
    team_id: str | None = None

    @model_validator(mode="after")
    def _check_team_scope(self) -> "ScopedRecord":
        if self.visibility == Visibility.TEAM and not self.team_id:
            raise ValueError("Team visibility requires a team id.")
        return self


class Organization(BaseModel):
    id: str
    slug: str
    name: str


class Team(BaseModel):
    id: str
    organization_id: str
    name: str
    slug: str


class TeamMember(BaseModel):
    team_id: str
    user_id: str
    status: TeamMemberStatus = TeamMemberStatus.PENDING


class FolderRecord(ScopedRecord):
    id: str
    name: str
    deleted_at: datetime | None = None


class FileRecord(ScopedRecord):
    """A stored document.

    Attributes:
        owner_id:            Always set for files (only folders may be unowned).
        object_key:          Key of the raw bytes in object storage.
        status:              uploading, ready or failed.
        ingest_attempts:     Number of ingestion attempts since the last upload.
        last_error:          Message of the most recent failed ingestion.
        current_generation:  Generation whose chunks are visible (0 = none yet).
        folder_name:         Name of the containing folder, filled on joined reads.
    """

    id: str
    folder_id: str
    owner_id: str
    file_name: str
    object_key: str
    size: int = 0
    mime_type: str | None = None
    status: FileStatus = FileStatus.UPLOADING
    ingest_attempts: int = 0
    last_error: str | None = None
    current_generation: int = 0
    deleted_at: datetime | None = None
    folder_name: str | None = None


class ChunkRecord(ScopedRecord):
    id: str
    file_id: str
    folder_id: str
    owner_id: str
    chunk_index: int
    start_line: int
    end_line: int
    content: str
    generation: int


class ChunkContext(BaseModel):
    """A chunk hydrated with the live names needed to render a citation."""

    chunk_id: str
    file_id: str
    folder_name: str
    file_name: str
    start_line: int
    end_line: int
    content: str


class FilePermission(BaseModel):
    file_id: str
    user_id: str
    access_level: FileAccessLevel
    granted_by: str | None = None


class FileGrant(ScopedRecord):
    """A file the caller was granted directly, with the scope needed to locate its vectors."""

    file_id: str
    owner_id: str
    access_level: FileAccessLevel


class ChatRecord(BaseModel):
    id: str
    user_id: str
    organization_id: str
    question: str
    answer: str
    citations: list[dict] = []
    scope: str | None = None
