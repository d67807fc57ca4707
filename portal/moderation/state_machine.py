"""Moderation state machine for projects and startups.

States: PENDING → SUBMITTED → {APPROVED, FEATURED, CHANGES_REQUESTED, REJECTED}.
Owners submit drafts; moderators decide. Nothing ever returns to PENDING:
a submission sent back for changes re-enters review through SUBMITTED.

Eligibility depends only on the status and the viewer's roles. The client
uses ``eligible_actions`` to decide what to offer; the backend uses
``plan_transition`` to decide what to execute. Both read ``TRANSITION_TABLE``.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass

from portal.moderation.exceptions import (
    ModerationAuthorizationError,
    ModerationValidationError,
    StateConflictError,
)


class SubmissionStatus(str, enum.Enum):
    PENDING = "PENDING"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    FEATURED = "FEATURED"
    CHANGES_REQUESTED = "CHANGES_REQUESTED"
    REJECTED = "REJECTED"


class Action(str, enum.Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    APPROVE_FEATURED = "approve_featured"
    FEATURE = "feature"
    UNFEATURE = "unfeature"
    REJECT = "reject"
    REQUEST_CHANGES = "request_changes"
    DELETE = "delete"


class Role(str, enum.Enum):
    OWNER = "owner"
    MODERATOR = "moderator"


@dataclass(frozen=True)
class TransitionRule:
    """One row of the transition table."""

    allowed_from: frozenset[SubmissionStatus]
    target: SubmissionStatus | None  # None: the submission is removed
    note_required: bool = False
    sets_submitted_at: bool = False
    sets_featured_at: bool = False


_S = SubmissionStatus
_APPROVABLE = frozenset({_S.SUBMITTED, _S.CHANGES_REQUESTED, _S.PENDING, _S.REJECTED})

TRANSITION_TABLE: dict[tuple[Action, Role], TransitionRule] = {
    (Action.SUBMIT, Role.OWNER): TransitionRule(
        frozenset({_S.PENDING, _S.CHANGES_REQUESTED}), _S.SUBMITTED, sets_submitted_at=True
    ),
    (Action.APPROVE, Role.MODERATOR): TransitionRule(_APPROVABLE, _S.APPROVED),
    (Action.APPROVE_FEATURED, Role.MODERATOR): TransitionRule(
        _APPROVABLE, _S.FEATURED, sets_featured_at=True
    ),
    (Action.FEATURE, Role.MODERATOR): TransitionRule(
        frozenset({_S.APPROVED}), _S.FEATURED, sets_featured_at=True
    ),
    (Action.UNFEATURE, Role.MODERATOR): TransitionRule(frozenset({_S.FEATURED}), _S.APPROVED),
    (Action.REJECT, Role.MODERATOR): TransitionRule(
        frozenset({_S.SUBMITTED, _S.PENDING, _S.CHANGES_REQUESTED}), _S.REJECTED, note_required=True
    ),
    (Action.REQUEST_CHANGES, Role.MODERATOR): TransitionRule(
        frozenset({_S.SUBMITTED, _S.PENDING}), _S.CHANGES_REQUESTED, note_required=True
    ),
    (Action.DELETE, Role.OWNER): TransitionRule(
        frozenset(SubmissionStatus) - {_S.APPROVED, _S.FEATURED}, None
    ),
    (Action.DELETE, Role.MODERATOR): TransitionRule(frozenset(SubmissionStatus), None),
}

# Moderator rules are consulted first: they are never narrower than the owner's.
_ROLE_PRECEDENCE = (Role.MODERATOR, Role.OWNER)


@dataclass(frozen=True)
class TransitionPlan:
    """The outcome of a permitted transition, before it is persisted."""

    action: Action
    acting_role: Role
    from_status: SubmissionStatus
    to_status: SubmissionStatus | None
    mod_notes: str | None = None
    sets_submitted_at: bool = False
    sets_featured_at: bool = False

    @property
    def removes(self) -> bool:
        return self.to_status is None


def _as_roles(roles: Role | Iterable[Role]) -> frozenset[Role]:
    if isinstance(roles, str):
        return frozenset({Role(roles)})
    return frozenset(Role(r) for r in roles)


def allowed_from(action: Action, role: Role) -> frozenset[SubmissionStatus]:
    """Statuses from which ``role`` may perform ``action`` (empty if never)."""
    rule = TRANSITION_TABLE.get((Action(action), Role(role)))
    return rule.allowed_from if rule else frozenset()


def eligible_actions(
    status: SubmissionStatus | str,
    roles: Role | Iterable[Role],
) -> frozenset[Action]:
    """Actions a viewer holding ``roles`` may take on a submission in ``status``."""
    status = SubmissionStatus(status)
    held = _as_roles(roles)
    return frozenset(
        action
        for (action, role), rule in TRANSITION_TABLE.items()
        if role in held and status in rule.allowed_from
    )


def can_transition(
    status: SubmissionStatus | str,
    action: Action | str,
    roles: Role | Iterable[Role],
) -> bool:
    return Action(action) in eligible_actions(status, roles)


def plan_transition(
    status: SubmissionStatus | str,
    action: Action | str,
    roles: Role | Iterable[Role],
    note: str | None = None,
) -> TransitionPlan:
    """Validate an action against the table and describe its effects.

    Checks run in order: role, current status, required note. The first
    failure raises ModerationAuthorizationError, StateConflictError or
    ModerationValidationError respectively.
    """
    status = SubmissionStatus(status)
    action = Action(action)
    held = _as_roles(roles)

    candidates = [
        (role, TRANSITION_TABLE[(action, role)])
        for role in _ROLE_PRECEDENCE
        if role in held and (action, role) in TRANSITION_TABLE
    ]
    if not candidates:
        raise ModerationAuthorizationError(
            f"Role(s) {sorted(r.value for r in held) or ['none']} may not {action.value}"
        )

    match = next(((role, rule) for role, rule in candidates if status in rule.allowed_from), None)
    if match is None:
        raise StateConflictError(status.value, action.value)
    role, rule = match

    cleaned = note.strip() if note else ""
    if rule.note_required and not cleaned:
        field = "reason" if action is Action.REJECT else "message"
        raise ModerationValidationError(f"A non-empty {field} is required to {action.value}", field)

    return TransitionPlan(
        action=action,
        acting_role=role,
        from_status=status,
        to_status=rule.target,
        mod_notes=cleaned if rule.note_required else None,
        sets_submitted_at=rule.sets_submitted_at,
        sets_featured_at=rule.sets_featured_at,
    )


def approval_action(status: SubmissionStatus | str, featured: bool) -> Action:
    """Map the approve endpoint's ``featured`` flag onto a concrete action.

    ``featured=False`` on a FEATURED submission is the unfeature transition and
    ``featured=True`` on an APPROVED one is the feature transition; otherwise
    the flag selects between approve and approve-and-feature.
    """
    status = SubmissionStatus(status)
    if featured:
        return Action.FEATURE if status is SubmissionStatus.APPROVED else Action.APPROVE_FEATURED
    return Action.UNFEATURE if status is SubmissionStatus.FEATURED else Action.APPROVE
