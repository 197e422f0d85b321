"""Pydantic models for the visibility model and caller identity."""

from enum import Enum

from pydantic import BaseModel


class Visibility(str, Enum):
    PERSONAL = "personal"
    TEAM = "team"
    ORGANIZATION = "organization"


class OrganizationRole(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"
    OWNER = "owner"


class AccessMode(str, Enum):
    READ = "read"
    WRITE = "write"


class Principal(BaseModel):
    """The authenticated caller as resolved by the external identity collaborator.

    Attributes:
        user_id:          Identifier of the calling user.
        organization_id:  The organization the caller acts in.
        organization_role: Role inside the organization.
        active_team_ids:  Active team memberships (at most one by invariant).
    """

    user_id: str
    organization_id: str
    organization_role: OrganizationRole = OrganizationRole.MEMBER
    active_team_ids: list[str] = []


class AccessDecision(BaseModel):
    """Outcome of a visibility check.

    reason is "not-found" or "forbidden" on denial and None when allowed.
    """

    allowed: bool
    reason: str | None = None
    message: str | None = None
