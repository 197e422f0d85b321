"""Pydantic models for chat requests and grounded answers.

Wire format is camelCase (knowledgeMode, folderName, ...); Python attributes
stay snake_case through an alias generator.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ChatScope(str, Enum):
    PERSONAL = "personal"
    TEAM = "team"
    ORG = "org"
    ALL = "all"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatRequest(CamelModel):
    """Incoming chat message from the frontend."""

    message: str = Field(min_length=1)
    knowledge_mode: bool = False
    scope: ChatScope = ChatScope.ALL


class Citation(CamelModel):
    """A reference to the lines of a file the answer was grounded on."""

    folder: str
    file: str
    lines: tuple[int, int]


class SourceContext(CamelModel):
    """A hydrated chunk handed to the completion model and returned as supporting excerpt."""

    order: int
    chunk_id: str
    folder_name: str
    file_name: str
    start_line: int
    end_line: int
    content: str


class StructuredAnswer(BaseModel):
    """Strict JSON shape the completion model must return on the knowledge path."""

    answer: str
    citations: list[Citation] = []


class ChatResponse(CamelModel):
    id: str
    answer: str
    citations: list[Citation] = []
    sources: list[SourceContext] = []
