"""
Complaint lifecycle rules.

Pure functions: no I/O, no session. Given the actor, the stored complaint and
the requested change, decide whether it is allowed and what to write.

State machine:
    Open ──────────► Closed      staff with a solution, or the owning student
    Reopened ──────► Closed      (same)
    Closed ────────► Reopened    owning student only; clears solution + resolved_at
    Closed ────────► Open        staff override; clears resolved_at
    Open ◄─────────► Reopened    staff override
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from api.apps.auth.schemas import CurrentUser
from api.apps.complaints.models import Complaint, ComplaintStatus
from api.apps.complaints.schemas import ComplaintUpdate
from api.utils.exceptions import PermissionDeniedException, ValidationException

OPEN = ComplaintStatus.OPEN.value
CLOSED = ComplaintStatus.CLOSED.value
REOPENED = ComplaintStatus.REOPENED.value

# Statuses that sit in a staff work queue
ACTIVE_STATUSES = frozenset({OPEN, REOPENED})

SOLUTION_REQUIRED = "A solution is required before closing the complaint."


def has_solution(text: Optional[str]) -> bool:
    """Whitespace-only solutions count as missing."""
    return bool((text or "").strip())


@dataclass
class PlannedUpdate:
    """Column values to write, plus the status edge for metrics/logging."""
    from_status: str
    to_status: str
    values: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_transition(self) -> bool:
        return self.from_status != self.to_status


def can_view(actor: CurrentUser, complaint: Complaint) -> bool:
    """Students see their own complaints; staff may open any complaint."""
    if actor.is_student:
        return complaint.student_id == actor.id
    return True


def authorize_view(actor: CurrentUser, complaint: Complaint) -> None:
    if not can_view(actor, complaint):
        raise PermissionDeniedException("You can only access your own complaints.")


def plan_update(
    actor: CurrentUser,
    complaint: Complaint,
    update: ComplaintUpdate,
    now: datetime,
) -> PlannedUpdate:
    """
    Authorize and validate an update, returning the values to persist.

    Raises:
        PermissionDeniedException: role/ownership does not allow the change
        ValidationException: empty update, illegal edge, or closing without a solution
    """
    changes = update.changes()
    if not changes:
        raise ValidationException("No changes supplied.")

    if actor.is_student:
        return _plan_student_update(actor, complaint, changes, now)
    return _plan_department_update(complaint, changes, now)


def _plan_student_update(
    actor: CurrentUser,
    complaint: Complaint,
    changes: Dict[str, Any],
    now: datetime,
) -> PlannedUpdate:
    if complaint.student_id != actor.id:
        raise PermissionDeniedException("You can only update your own complaints.")

    # Students only ever drive the status: self-close and reopen
    if set(changes) != {"status"} or changes["status"] is None:
        raise PermissionDeniedException(
            "Students can only close or reopen their own complaints."
        )

    current = complaint.status
    target = ComplaintStatus(changes["status"]).value
    plan = PlannedUpdate(from_status=current, to_status=target)

    if target == CLOSED:
        if current not in ACTIVE_STATUSES:
            raise ValidationException("This complaint is already closed.")
        plan.values = {"status": CLOSED, "resolved_at": now}
    elif target == REOPENED:
        if current != CLOSED:
            raise ValidationException("Only a closed complaint can be reopened.")
        plan.values = {"status": REOPENED, "solution_text": "", "resolved_at": None}
    else:
        raise PermissionDeniedException(
            "Students can only close or reopen their own complaints."
        )
    return plan


def _plan_department_update(
    complaint: Complaint,
    changes: Dict[str, Any],
    now: datetime,
) -> PlannedUpdate:
    current = complaint.status
    values: Dict[str, Any] = {}

    if changes.get("department") is not None:
        values["department"] = changes["department"].value

    if "solution_text" in changes:
        values["solution_text"] = (changes["solution_text"] or "").strip()

    target = current
    if changes.get("status") is not None:
        target = ComplaintStatus(changes["status"]).value
        if current == CLOSED and target == REOPENED:
            raise PermissionDeniedException(
                "Only the student who filed the complaint can reopen it."
            )

    # A Closed complaint always carries a solution, whichever field the update touches
    solution = values.get("solution_text", complaint.solution_text)
    if target == CLOSED and not has_solution(solution):
        raise ValidationException(SOLUTION_REQUIRED)

    if changes.get("status") is not None:
        values["status"] = target
        if target == CLOSED and current != CLOSED:
            values["resolved_at"] = now
        elif target != CLOSED and current == CLOSED:
            values["resolved_at"] = None

    return PlannedUpdate(from_status=current, to_status=target, values=values)


def apply_update(complaint: Complaint, plan: PlannedUpdate) -> Complaint:
    for column, value in plan.values.items():
        setattr(complaint, column, value)
    return complaint
