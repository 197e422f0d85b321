"""Row builders shared by the store, service and API tests."""

from shared.clients.storage.StorageClientInterface import StorageClientInterface
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.models.access import Visibility
from shared.models.records import FileRecord, FileStatus, FolderRecord

ORG_ID = "acme"
OTHER_ORG_ID = "globex"


async def seed_folder(
    store: StoreClientInterface,
    owner_id: str | None,
    visibility: Visibility = Visibility.PERSONAL,
    name: str = "Notes",
    folder_id: str | None = None,
    team_id: str | None = None,
    organization_id: str = ORG_ID,
) -> FolderRecord:
    folder = FolderRecord(
        id=folder_id or f"folder-{name.lower()}-{owner_id}",
        name=name,
        organization_id=organization_id,
        visibility=visibility,
        owner_id=owner_id,
        team_id=team_id,
    )
    return await store.create_folder(folder)


async def seed_text_file(
    store: StoreClientInterface,
    storage: StorageClientInterface,
    folder: FolderRecord,
    owner_id: str,
    text: str,
    file_id: str = "file-1",
    file_name: str = "notes.txt",
    mime_type: str | None = None,
) -> FileRecord:
    """Store text as an uploaded object and create its file record in status uploading."""
    content = text.encode("utf-8")
    object_key = storage.build_object_key(
        visibility=folder.visibility,
        organization_id=folder.organization_id,
        owner_id=owner_id,
        folder_id=folder.id,
        file_id=file_id,
        file_name=file_name,
        team_id=folder.team_id,
    )
    await storage.put(object_key, content, content_type=mime_type)
    return await store.create_file(
        FileRecord(
            id=file_id,
            organization_id=folder.organization_id,
            folder_id=folder.id,
            owner_id=owner_id,
            team_id=folder.team_id,
            visibility=folder.visibility,
            file_name=file_name,
            object_key=object_key,
            size=len(content),
            mime_type=mime_type,
            status=FileStatus.UPLOADING,
        )
    )
