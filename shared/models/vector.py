"""Vector index payload models.

VectorMetadata is denormalized on purpose: it carries everything needed to
render a citation (folder name, file name, line range) without a join, plus the
visibility scope used to place the vector in its namespace.
"""

from pydantic import BaseModel

from shared.models.access import Visibility


class VectorMetadata(BaseModel):
    """Metadata stored alongside each chunk vector.

    Attributes:
        chunk_id:         Chunk row id, also the vector id.
        file_id:          Parent file id.
        folder_id:        Containing folder id.
        folder_name:      Folder name at ingestion time (display only).
        file_name:        File name at ingestion time (display only).
        start_line:       1-indexed first line of the chunk.
        end_line:         1-indexed last line of the chunk (inclusive).
        visibility:       Visibility tier of the parent file.
        owner_id:         Owner of the parent file.
        organization_id:  Organization of the parent file.
        team_id:          Team of the parent file for team visibility.
        generation:       Ingestion generation the chunk belongs to.
    """

    chunk_id: str
    file_id: str
    folder_id: str
    folder_name: str = ""
    file_name: str = ""
    start_line: int = 0
    end_line: int = 0
    visibility: Visibility
    owner_id: str = ""
    organization_id: str = ""
    team_id: str | None = None
    generation: int = 0


class VectorMatch(VectorMetadata):
    """A query hit: the stored metadata plus its similarity score."""

    score: float = 0.0


class VectorScope(BaseModel):
    """The owning scope of a set of vectors, used to resolve their namespace on delete."""

    visibility: Visibility
    organization_id: str
    owner_id: str
    team_id: str | None = None
