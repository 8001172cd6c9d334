import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

TEAM_COLLECTION = "teams"

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")


class TeamViolationKind(str, Enum):
    TEAM_REQUIRED = "Team object required"
    NAME_REQUIRED = "Team Name is required"
    MEMBERS_REQUIRED = "At least one member is required"
    MEMBER_NAME_REQUIRED = "Member Name is required"
    MEMBER_ROLE_REQUIRED = "Member Role is required"
    MEMBER_EMAIL_REQUIRED = "Member Email is required"
    INVALID_EMAIL = "Invalid Email format for member: {name}"


@dataclass(frozen=True)
class TeamViolation:
    kind: TeamViolationKind
    message: str


def _violation(kind: TeamViolationKind, **values) -> TeamViolation:
    return TeamViolation(kind=kind, message=kind.value.format(**values))


def _is_filled(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def validate_team(team: Any) -> Optional[TeamViolation]:
    """Check a team payload before it is persisted.

    Returns None for a valid team, otherwise the first violation found. The
    team name is checked first, then that members exist, then each member in
    order (name, role, email, email format).
    """
    if not isinstance(team, dict):
        return _violation(TeamViolationKind.TEAM_REQUIRED)
    if not _is_filled(team.get("name")):
        return _violation(TeamViolationKind.NAME_REQUIRED)

    members = team.get("members")
    if not isinstance(members, list) or not members:
        return _violation(TeamViolationKind.MEMBERS_REQUIRED)

    for member in members:
        if not isinstance(member, dict):
            member = {}
        if not _is_filled(member.get("name")):
            return _violation(TeamViolationKind.MEMBER_NAME_REQUIRED)
        if not _is_filled(member.get("role")):
            return _violation(TeamViolationKind.MEMBER_ROLE_REQUIRED)
        if not _is_filled(member.get("email")):
            return _violation(TeamViolationKind.MEMBER_EMAIL_REQUIRED)
        if not EMAIL_PATTERN.fullmatch(member["email"]):
            return _violation(TeamViolationKind.INVALID_EMAIL, name=member["name"])

    return None
