"""Declarative table definitions of the relational store."""

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class OrganizationRow(Base):
    __tablename__ = "organizations"
    id = Column(String, primary_key=True)
    slug = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=True)


class TeamRow(Base):
    __tablename__ = "teams"
    __table_args__ = (UniqueConstraint("organization_id", "slug"),)
    id = Column(String, primary_key=True)
    organization_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=True)


class TeamMemberRow(Base):
    __tablename__ = "team_members"
    team_id = Column(String, primary_key=True)
    user_id = Column(String, primary_key=True, index=True)
    status = Column(String, nullable=False, default="pending")  # pending|active|removed
    joined_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)


class FolderRow(Base):
    __tablename__ = "folders"
    __table_args__ = (Index("idx_folders_org_visibility", "organization_id", "visibility"),)
    # ids are unique per organization, each organization has its own "public-root"
    id = Column(String, primary_key=True)
    organization_id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    visibility = Column(String, nullable=False)  # personal|team|organization
    owner_id = Column(String, nullable=True)
    team_id = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class FileRow(Base):
    __tablename__ = "files"
    id = Column(String, primary_key=True)
    organization_id = Column(String, index=True, nullable=False)
    folder_id = Column(String, index=True, nullable=False)
    owner_id = Column(String, nullable=False)
    team_id = Column(String, nullable=True)
    visibility = Column(String, nullable=False)
    file_name = Column(String, nullable=False)
    object_key = Column(String, nullable=False)
    size = Column(Integer, nullable=False, default=0)
    mime_type = Column(String, nullable=True)
    status = Column(String, index=True, nullable=False, default="uploading")  # uploading|ready|failed
    ingest_attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    current_generation = Column(Integer, nullable=False, default=0)
    next_generation = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class ChunkRow(Base):
    __tablename__ = "chunks"
    __table_args__ = (Index("idx_chunks_file_generation", "file_id", "generation"),)
    id = Column(String, primary_key=True)
    file_id = Column(String, nullable=False)
    folder_id = Column(String, nullable=False)
    organization_id = Column(String, nullable=False)
    owner_id = Column(String, nullable=False)
    team_id = Column(String, nullable=True)
    visibility = Column(String, nullable=False)
    chunk_index = Column(Integer, nullable=False)
    start_line = Column(Integer, nullable=False)
    end_line = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    generation = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=True)


class FilePermissionRow(Base):
    __tablename__ = "file_permissions"
    file_id = Column(String, primary_key=True)
    user_id = Column(String, primary_key=True, index=True)
    access_level = Column(String, nullable=False)  # viewer|editor
    granted_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=True)


class ChatRow(Base):
    __tablename__ = "chats"
    id = Column(String, primary_key=True)
    user_id = Column(String, index=True, nullable=False)
    organization_id = Column(String, nullable=False)
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    citations = Column(JSON, nullable=False, default=list)
    scope = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=True)
