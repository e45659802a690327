"""
Access decisions over resolved role and permission names.

Only explicit grants count: there are no wildcards and no role hierarchy.
"""
from enum import Enum
from typing import Iterable


class Match(str, Enum):
    ANY = "any"
    ALL = "all"


def has_role(held: Iterable[str], role: str) -> bool:
    return role in set(held)


def has_any_role(held: Iterable[str], required: Iterable[str]) -> bool:
    """At least one required role is held. An empty requirement never matches."""
    return not set(held).isdisjoint(required)


def has_all_roles(held: Iterable[str], required: Iterable[str]) -> bool:
    """Every required role is held. An empty requirement is satisfied."""
    return set(required).issubset(held)


def has_permission(held: Iterable[str], permission: str) -> bool:
    return bool(permission) and permission in set(held)


def check_roles(held: Iterable[str], required: Iterable[str], match: Match = Match.ALL) -> bool:
    if Match(match) is Match.ANY:
        return has_any_role(held, required)
    return has_all_roles(held, required)


def check_permissions(held: Iterable[str], required: Iterable[str], match: Match = Match.ALL) -> bool:
    # Same set semantics as roles; names are compared verbatim
    return check_roles(held, required, match)
