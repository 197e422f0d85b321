"""Visibility model: who may read or write a folder, file or chunk.

Pure rules, evaluated in order:

1. Deleted, missing or foreign-organization entities are never visible (not-found).
2. organization: readable by the whole organization; writable only by the owner.
   Unowned entities (the organization root) are read-only for everyone.
3. team: readable by the owner and by members of the entity's team; writable by the owner.
4. personal: readable and writable only by the owner.
"""

from datetime import datetime
from typing import Protocol

from shared.errors import ForbiddenError, NotFoundError
from shared.models.access import AccessDecision, AccessMode, Principal, Visibility

NOT_FOUND = "not-found"
FORBIDDEN = "forbidden"


class ScopedEntity(Protocol):
    organization_id: str
    visibility: Visibility
    owner_id: str | None
    team_id: str | None
    deleted_at: datetime | None


def _allow() -> AccessDecision:
    return AccessDecision(allowed=True)


def _deny(reason: str, message: str) -> AccessDecision:
    return AccessDecision(allowed=False, reason=reason, message=message)


def can_access(entity: ScopedEntity | None, principal: Principal, mode: AccessMode = AccessMode.READ) -> AccessDecision:
    """Decide whether principal may access entity in the given mode.

    Args:
        entity (ScopedEntity | None): The folder, file or chunk; None when it does not exist.
        principal (Principal): The caller, including its active team ids.
        mode (AccessMode): read or write.

    Returns:
        AccessDecision: allowed, or denied with reason "not-found" / "forbidden".
    """
    if entity is None or getattr(entity, "deleted_at", None) is not None:
        return _deny(NOT_FOUND, "Not found")
    if entity.organization_id != principal.organization_id:
        return _deny(NOT_FOUND, "Not found")

    is_owner = entity.owner_id is not None and entity.owner_id == principal.user_id

    if entity.visibility == Visibility.ORGANIZATION:
        if mode == AccessMode.READ:
            return _allow()
        if entity.owner_id is None:
            return _deny(FORBIDDEN, "The shared organization root is read-only.")
        if not is_owner:
            return _deny(FORBIDDEN, "Only the owner can modify this shared entry.")
        return _allow()

    if entity.visibility == Visibility.TEAM:
        is_member = entity.team_id is not None and entity.team_id in principal.active_team_ids
        if not is_owner and not is_member:
            return _deny(FORBIDDEN, "You are not a member of this team.")
        if mode == AccessMode.WRITE and not is_owner:
            return _deny(FORBIDDEN, "Only the owner can modify this team entry.")
        return _allow()

    # personal
    if not is_owner:
        return _deny(FORBIDDEN, "This entry is private to another user.")
    return _allow()


def assert_access(entity: ScopedEntity | None, principal: Principal, mode: AccessMode = AccessMode.READ) -> None:
    """Raise the matching domain error when can_access denies.

    Raises:
        NotFoundError: For deleted, missing or foreign entities.
        ForbiddenError: For visibility or ownership violations.
    """
    decision = can_access(entity, principal, mode)
    if decision.allowed:
        return
    if decision.reason == NOT_FOUND:
        raise NotFoundError(decision.message or "Not found")
    raise ForbiddenError(decision.message or "Forbidden")
