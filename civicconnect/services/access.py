"""
Access control — decides whether an actor may perform an action on a resource.

``authorize`` is a pure decision function (no I/O). Rules, in priority order:

1. ``admin`` passes every action.
2. A blocked actor is denied everything.
3. Ownership actions require the actor's email to equal the resource owner's.
4. Staff actions require the issue to be assigned to the actor or, when
   claiming, to be ``Pending`` in the actor's district.
5. Participation actions are open to any authenticated actor.
6. Everything else is denied.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from civicconnect.core.exceptions import ForbiddenError
from civicconnect.models.enums import IssueStatus, Role


class Action(str, enum.Enum):
    CREATE_ISSUE = "create_issue"
    EDIT_ISSUE = "edit_issue"
    DELETE_ISSUE = "delete_issue"
    VIEW_DASHBOARD = "view_dashboard"
    EDIT_PROFILE = "edit_profile"
    CHANGE_STATUS = "change_status"
    CLAIM_ISSUE = "claim_issue"
    ASSIGN_ISSUE = "assign_issue"
    UPVOTE_ISSUE = "upvote_issue"
    BOOST_ISSUE = "boost_issue"
    SUBSCRIBE = "subscribe"
    APPLY_FOR_STAFF = "apply_for_staff"
    REVIEW_STAFF_APPLICATION = "review_staff_application"
    MANAGE_USERS = "manage_users"
    VIEW_STATISTICS = "view_statistics"


OWNERSHIP_ACTIONS = frozenset(
    {Action.DELETE_ISSUE, Action.EDIT_ISSUE, Action.EDIT_PROFILE, Action.VIEW_DASHBOARD}
)
STAFF_ACTIONS = frozenset({Action.CHANGE_STATUS, Action.CLAIM_ISSUE})
PARTICIPATION_ACTIONS = frozenset(
    {
        Action.CREATE_ISSUE,
        Action.UPVOTE_ISSUE,
        Action.BOOST_ISSUE,
        Action.SUBSCRIBE,
        Action.APPLY_FOR_STAFF,
    }
)


@dataclass(frozen=True)
class Actor:
    """Verified identity and role of whoever is making the request."""

    email: str
    role: Role
    district: str | None = None
    is_blocked: bool = False
    display_name: str | None = None

    @classmethod
    def from_user(cls, user) -> Actor:
        return cls(
            email=user.email,
            role=Role(user.role),
            district=user.district,
            is_blocked=bool(user.is_blocked),
            display_name=user.display_name,
        )

    @property
    def name(self) -> str:
        return self.display_name or self.email


@dataclass(frozen=True)
class Resource:
    owner_email: str | None = None
    assigned_email: str | None = None
    district: str | None = None
    status: str | None = None

    @classmethod
    def for_issue(cls, issue) -> Resource:
        return cls(
            owner_email=issue.owner_email,
            assigned_email=issue.assigned_email,
            district=issue.district,
            status=issue.status,
        )

    @classmethod
    def owned_by(cls, email: str) -> Resource:
        return cls(owner_email=email)


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str

    def __bool__(self) -> bool:
        return self.allowed


def _allow(reason: str) -> Decision:
    return Decision(True, reason)


def _deny(reason: str) -> Decision:
    return Decision(False, reason)


def authorize(actor: Actor, action: Action, resource: Resource | None = None) -> Decision:
    resource = resource or Resource()

    if actor.role is Role.ADMIN:
        return _allow("admin")

    if actor.is_blocked:
        return _deny("Your account has been blocked")

    if action in OWNERSHIP_ACTIONS:
        if resource.owner_email is not None and actor.email == resource.owner_email:
            return _allow("owner")
        return _deny("Only the owner can perform this action")

    if action in STAFF_ACTIONS:
        if actor.role is not Role.STAFF:
            return _deny("Staff privileges required")
        if resource.assigned_email is not None and resource.assigned_email == actor.email:
            return _allow("assigned staff")
        if (
            action is Action.CLAIM_ISSUE
            and resource.status == IssueStatus.PENDING.value
            and actor.district is not None
            and resource.district == actor.district
        ):
            return _allow("district staff")
        return _deny("Issue is not assigned to you")

    if action in PARTICIPATION_ACTIONS:
        return _allow("authenticated")

    return _deny("Admin privileges required")


def ensure_authorized(actor: Actor, action: Action, resource: Resource | None = None) -> None:
    """Raise ``ForbiddenError`` unless ``authorize`` allows the action."""
    decision = authorize(actor, action, resource)
    if not decision:
        raise ForbiddenError(decision.reason)
