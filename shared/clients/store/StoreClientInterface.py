from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.records import (
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


class StoreClientInterface(ClientInterface):
    """Relational store of organizations, teams, folders, files, chunks, grants and chats.

    Reads of soft-deleted rows return the row with deleted_at set; callers run the
    visibility check which treats them as not found. The only exceptions are the
    hydration and grant listings which never return chunks of deleted files.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "store"

    ##########################################
    ######### ORGANIZATIONS & TEAMS ##########
    ##########################################

    @abstractmethod
    async def create_organization(self, organization: Organization) -> Organization:
        pass

    @abstractmethod
    async def create_team(self, team: Team) -> Team:
        pass

    @abstractmethod
    async def get_team(self, team_id: str) -> Team | None:
        pass

    @abstractmethod
    async def list_active_team_ids(self, user_id: str, organization_id: str) -> list[str]:
        """Ids of the teams of organization_id in which user_id is an active member."""
        pass

    @abstractmethod
    async def get_active_membership(self, user_id: str, organization_id: str) -> TeamMember | None:
        pass

    @abstractmethod
    async def set_team_member_status(self, team_id: str, user_id: str, status: TeamMemberStatus) -> TeamMember:
        """Create or update the membership row of user_id in team_id."""
        pass

    ##########################################
    ################ FOLDERS #################
    ##########################################

    @abstractmethod
    async def create_folder(self, folder: FolderRecord) -> FolderRecord:
        pass

    @abstractmethod
    async def get_folder(self, folder_id: str, organization_id: str) -> FolderRecord | None:
        pass

    @abstractmethod
    async def ensure_organization_root(self, organization_id: str) -> FolderRecord:
        """Return the unowned organization root folder, creating it on first use."""
        pass

    ##########################################
    ################# FILES ##################
    ##########################################

    @abstractmethod
    async def create_file(self, file: FileRecord) -> FileRecord:
        pass

    @abstractmethod
    async def get_file(self, file_id: str) -> FileRecord | None:
        """Load a file joined with the name of its folder."""
        pass

    @abstractmethod
    async def update_file_after_conversion(self, file_id: str, file_name: str, object_key: str, size: int, mime_type: str) -> None:
        pass

    @abstractmethod
    async def update_file_status(self, file_id: str, status: FileStatus, last_error: str | None = None) -> None:
        """Set the status. last_error is stored as given, so ready clears it."""
        pass

    @abstractmethod
    async def record_ingest_attempt(self, file_id: str) -> int:
        """Increment and return the attempt counter."""
        pass

    @abstractmethod
    async def reset_ingest_state(self, file_id: str) -> None:
        """Put a file back to uploading with zero attempts and no error."""
        pass

    @abstractmethod
    async def soft_delete_file(self, file_id: str) -> None:
        pass

    @abstractmethod
    async def list_files_needing_ingest(self, organization_id: str | None = None, limit: int | None = None) -> list[FileRecord]:
        """Live files whose status is uploading or failed, oldest first."""
        pass

    ##########################################
    ######### CHUNKS & GENERATIONS ###########
    ##########################################

    @abstractmethod
    async def allocate_generation(self, file_id: str) -> int:
        """Reserve a new generation number for the file. Numbers strictly increase."""
        pass

    @abstractmethod
    async def insert_chunk(self, chunk: ChunkRecord) -> None:
        pass

    @abstractmethod
    async def activate_generation(self, file_id: str, generation: int) -> bool:
        """Compare-and-set the visible generation.

        Succeeds only if generation is newer than the current one.

        Returns:
            bool: True if the file now points at generation.
        """
        pass

    @abstractmethod
    async def list_chunks(self, file_id: str, generation: int | None = None, before_generation: int | None = None) -> list[ChunkRecord]:
        """Chunks of a file, optionally limited to one generation or to the generations below before_generation."""
        pass

    @abstractmethod
    async def delete_chunks(self, chunk_ids: list[str]) -> None:
        pass

    @abstractmethod
    async def get_chunk_contexts(self, chunk_ids: list[str]) -> list[ChunkContext]:
        """Hydrate chunk ids with folder and file names.

        Only chunks of the current generation of live files are returned.
        """
        pass

    ##########################################
    ################ GRANTS ##################
    ##########################################

    @abstractmethod
    async def grant_file_permission(self, permission: FilePermission) -> None:
        pass

    @abstractmethod
    async def list_file_grants(self, user_id: str, organization_id: str) -> list[FileGrant]:
        """Live files of organization_id granted to user_id through a file permission."""
        pass

    ##########################################
    ################# CHATS ##################
    ##########################################

    @abstractmethod
    async def record_chat(self, chat: ChatRecord) -> None:
        pass
