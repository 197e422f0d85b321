from shared.models.access import Visibility
from shared.models.chat import CamelModel
from shared.models.records import FileAccessLevel, FileStatus, TeamMemberStatus


class IngestResponse(CamelModel):
    chunk_count: int
    generation: int


class FileResponse(CamelModel):
    id: str
    folder_id: str
    file_name: str
    object_key: str
    size: int
    visibility: Visibility
    status: FileStatus


class FileStatusResponse(CamelModel):
    id: str
    status: FileStatus
    ingest_attempts: int
    last_error: str | None = None


class PurgeResponse(CamelModel):
    id: str
    deleted: bool
    chunk_count: int


class FolderResponse(CamelModel):
    id: str
    name: str
    visibility: Visibility
    owner_id: str | None = None
    team_id: str | None = None


class MembershipResponse(CamelModel):
    team_id: str
    user_id: str
    status: TeamMemberStatus


class GrantResponse(CamelModel):
    file_id: str
    user_id: str
    access_level: FileAccessLevel
