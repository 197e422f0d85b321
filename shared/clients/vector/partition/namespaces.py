"""Namespace tokens partitioning the vector index by visibility scope.

A token has the form "scope:identifier" where scope is org, team or user and
the identifier is URL-safe base64 without padding, so it can be decoded back
into a metadata filter for indexes that do not support namespaces.
"""

import base64
import binascii

from shared.models.access import Visibility

ORG_PREFIX = "org"
TEAM_PREFIX = "team"
USER_PREFIX = "user"
UNKNOWN_TEAM_NAMESPACE = "team:unknown"


def encode_identifier(value: str) -> str:
    return base64.urlsafe_b64encode(value.encode("utf-8")).decode("ascii").rstrip("=")


def decode_identifier(token: str) -> str:
    """Reverse encode_identifier. Returns an empty string for undecodable tokens."""
    if not token:
        return ""
    padded = token + "=" * (-len(token) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError):
        return ""


def organization_namespace(organization_id: str) -> str:
    return f"{ORG_PREFIX}:{encode_identifier(organization_id)}"


def team_namespace(team_id: str) -> str:
    return f"{TEAM_PREFIX}:{encode_identifier(team_id)}"


def personal_namespace(user_id: str) -> str:
    return f"{USER_PREFIX}:{encode_identifier(user_id)}"


def namespace_for_scope(visibility: Visibility, organization_id: str, owner_id: str, team_id: str | None = None) -> str:
    """Return the namespace a vector with the given scope lives in."""
    if visibility == Visibility.ORGANIZATION:
        return organization_namespace(organization_id)
    if visibility == Visibility.TEAM:
        if not team_id:
            return UNKNOWN_TEAM_NAMESPACE
        return team_namespace(team_id)
    return personal_namespace(owner_id)


def filter_from_namespace(namespace: str) -> dict[str, str]:
    """Translate a namespace token into the equivalent metadata filter.

    Returns:
        dict[str, str]: e.g. {"visibility": "organization", "organization_id": "acme"};
            empty for unknown prefixes.
    """
    scope, _, token = namespace.partition(":")
    if scope == ORG_PREFIX:
        return {"visibility": Visibility.ORGANIZATION.value, "organization_id": decode_identifier(token)}
    if scope == TEAM_PREFIX:
        return {"visibility": Visibility.TEAM.value, "team_id": decode_identifier(token)}
    if scope == USER_PREFIX:
        return {"visibility": Visibility.PERSONAL.value, "owner_id": decode_identifier(token)}
    return {}
