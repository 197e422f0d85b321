from pydantic import Field

from shared.models.access import Visibility
from shared.models.chat import CamelModel
from shared.models.records import FileAccessLevel


class IngestRequest(CamelModel):
    file_id: str = Field(min_length=1)


class CreateFolderRequest(CamelModel):
    name: str = Field(min_length=1)
    visibility: Visibility = Visibility.PERSONAL
    team_id: str | None = None


class GrantRequest(CamelModel):
    user_id: str = Field(min_length=1)
    access_level: FileAccessLevel = FileAccessLevel.VIEWER
