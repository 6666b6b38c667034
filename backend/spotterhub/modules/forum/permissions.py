"""
Permission resolver.

Maps the role claims of an identity onto the forum capability set.
Resolved fresh on every request; role claims change on promotion or
demotion and are never cached here.
"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from spotterhub.core.security import Identity


class Role(str, Enum):
    """Roles recognised in identity-provider claims."""

    MODERATOR = "moderator"
    ADMIN = "admin"


@dataclass(frozen=True)
class CapabilitySet:
    """Moderation capabilities of one actor in one request."""

    can_moderate: bool = False
    can_pin: bool = False
    can_lock: bool = False
    can_delete: bool = False
    can_edit_any_post: bool = False
    can_manage_users: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


NO_CAPABILITIES = CapabilitySet()

ROLE_CAPABILITIES: dict[Role, CapabilitySet] = {
    Role.MODERATOR: CapabilitySet(
        can_moderate=True,
        can_pin=True,
        can_lock=True,
        can_delete=True,
    ),
    Role.ADMIN: CapabilitySet(
        can_moderate=True,
        can_pin=True,
        can_lock=True,
        can_delete=True,
        can_edit_any_post=True,
        can_manage_users=True,
    ),
}


def parse_roles(claims: list[str]) -> set[Role]:
    """Keep the recognised roles, ignoring unknown claim values."""
    roles = set()
    for claim in claims:
        try:
            roles.add(Role(claim.strip().lower()))
        except ValueError:
            continue
    return roles


def merge(a: CapabilitySet, b: CapabilitySet) -> CapabilitySet:
    """Union of two capability sets."""
    return CapabilitySet(
        **{key: value or getattr(b, key) for key, value in asdict(a).items()}
    )


def resolve_capabilities(identity: Identity | None) -> CapabilitySet:
    """
    Derive the capability set for an identity.

    Args:
        identity: Caller identity, or None for no caller

    Returns:
        Capability set; all-false for anonymous callers or callers
        without a recognised role
    """
    if identity is None or not identity.is_authenticated:
        return NO_CAPABILITIES

    capabilities = NO_CAPABILITIES
    for role in parse_roles(identity.roles):
        capabilities = merge(capabilities, ROLE_CAPABILITIES[role])
    return capabilities
