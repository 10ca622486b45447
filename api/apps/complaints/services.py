"""
Complaint business logic.

Creation (with best-effort AI enrichment), scoped listing, guarded updates
and batch solution drafting. Authorization and state rules live in
`lifecycle.py`; this module does the I/O around them.
"""

from typing import List, Optional, Tuple

from sqlalchemy import select, func, case, desc, asc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from api.apps.auth.models import Department, Role, User
from api.apps.auth.schemas import CurrentUser
from api.apps.complaints.lifecycle import (
    ACTIVE_STATUSES,
    apply_update,
    authorize_view,
    has_solution,
    plan_update,
)
from api.apps.complaints.models import (
    Complaint,
    ComplaintPriority,
    ComplaintStatus,
    PRIORITY_RANK,
    STATUS_RANK,
)
from api.apps.complaints.schemas import (
    BatchResult,
    ComplaintCreate,
    ComplaintResponse,
    ComplaintSort,
    ComplaintUpdate,
)
from api.config.settings import settings
from api.core.oracle import ComplaintOracle
from api.db.base_model import utcnow
from api.utils.exceptions import (
    ComplaintNotFoundException,
    ConflictException,
    OracleError,
    PermissionDeniedException,
    StudentNotFoundException,
    ValidationException,
)
from api.utils.logger import get_logger
from api.utils.metrics import (
    batch_item_count,
    complaint_created_count,
    complaint_transition_count,
    enrichment_fallback_count,
)
from api.utils.stage_timer import StageTimer

logger = get_logger(__name__)


# ── Helpers ───────────────────────────────────────────────────────────────────

async def load_complaint(session: AsyncSession, complaint_id: str) -> Complaint:
    complaint = await Complaint.get_by_id(session, complaint_id)
    if complaint is None:
        raise ComplaintNotFoundException(complaint_id)
    return complaint


async def _resolve_student(
    session: AsyncSession,
    actor: CurrentUser,
    student_id: Optional[str],
) -> Tuple[str, str]:
    """
    Return (student_id, student_name) for the complaint owner.

    Students always file for themselves. Staff must name an existing student;
    the id match is case-insensitive ("s171..." finds "S171...").
    """
    if actor.is_student:
        return actor.id, actor.name

    if not student_id or not student_id.strip():
        raise ValidationException("A student ID is required when staff file a complaint.")

    result = await session.execute(
        select(User).where(
            func.lower(User.id) == student_id.strip().lower(),
            User.role == Role.STUDENT.value,
        ).limit(1)
    )
    student = result.scalars().first()
    if student is None:
        raise StudentNotFoundException(student_id.strip())
    return student.id, student.name


async def _classify_priority(oracle: ComplaintOracle, text: str) -> ComplaintPriority:
    try:
        return await oracle.classify_priority(text)
    except OracleError as e:
        enrichment_fallback_count.labels(field="priority").inc()
        logger.warning(f"Priority classification failed, defaulting to Medium: {e.detail}")
        return ComplaintPriority.MEDIUM


async def _staff_guidance(oracle: ComplaintOracle, text: str) -> str:
    try:
        return await oracle.draft_staff_guidance(text)
    except OracleError as e:
        enrichment_fallback_count.labels(field="ai_recommendation").inc()
        logger.warning(f"Staff guidance failed, using placeholder: {e.detail}")
        return settings.FALLBACK_RECOMMENDATION


# ── Create ────────────────────────────────────────────────────────────────────

async def create_complaint(
    session: AsyncSession,
    oracle: ComplaintOracle,
    actor: CurrentUser,
    data: ComplaintCreate,
    idempotency_key: Optional[str] = None,
) -> Tuple[ComplaintResponse, bool]:
    """
    File a complaint and enrich it with a priority and staff guidance.

    Enrichment is best-effort: an AI failure falls back to Medium priority and
    a generic recommendation, creation itself never fails on the AI.

    With an idempotency key, a repeated submission for the same student
    returns the stored complaint without calling the AI again.

    Returns:
        (complaint, created) where created is False for a replay
    """
    student_id, student_name = await _resolve_student(session, actor, data.student_id)

    if idempotency_key:
        existing = await Complaint.find_one(
            db=session, student_id=student_id, idempotency_key=idempotency_key
        )
        if existing is not None:
            logger.info(f"Idempotent replay: {existing.id} key={idempotency_key}")
            return ComplaintResponse.model_validate(existing), False

    timer = StageTimer(operation="create_complaint")

    with timer.stage("classify_priority"):
        priority = await _classify_priority(oracle, data.complaint_text)

    with timer.stage("staff_guidance"):
        recommendation = await _staff_guidance(oracle, data.complaint_text)

    with timer.stage("persist"):
        try:
            complaint = await Complaint.create(
                db=session,
                student_id=student_id,
                student_name=student_name,
                department=data.department.value,
                complaint_text=data.complaint_text,
                status=ComplaintStatus.OPEN.value,
                priority=priority.value,
                solution_text="",
                resolved_at=None,
                ai_recommendation=recommendation,
                idempotency_key=idempotency_key,
            )
        except IntegrityError:
            # Lost a race against a concurrent submission with the same key
            await session.rollback()
            if not idempotency_key:
                raise
            existing = await Complaint.find_one(
                db=session, student_id=student_id, idempotency_key=idempotency_key
            )
            if existing is None:
                raise
            return ComplaintResponse.model_validate(existing), False

    complaint_created_count.labels(
        department=complaint.department, priority=complaint.priority
    ).inc()
    logger.info(
        f"Complaint created: {complaint.id} student={student_id} "
        f"dept={complaint.department} priority={complaint.priority} "
        f"by={actor.role.value} timings={timer.as_dict()}"
    )
    return ComplaintResponse.model_validate(complaint), True


# ── Read ──────────────────────────────────────────────────────────────────────

def _ordering(sort: ComplaintSort) -> list:
    if sort == ComplaintSort.DATE_ASC:
        return [asc(Complaint.created_at)]
    if sort == ComplaintSort.PRIORITY:
        return [case(PRIORITY_RANK, value=Complaint.priority), desc(Complaint.created_at)]
    if sort == ComplaintSort.STATUS:
        return [case(STATUS_RANK, value=Complaint.status), desc(Complaint.created_at)]
    return [desc(Complaint.created_at)]


async def list_complaints(
    session: AsyncSession,
    actor: CurrentUser,
    status: Optional[ComplaintStatus] = None,
    sort: ComplaintSort = ComplaintSort.DATE_DESC,
    department: Optional[Department] = None,
    all_departments: bool = False,
    limit: int = 500,
    offset: int = 0,
) -> List[ComplaintResponse]:
    """
    Complaints the caller may see.

    Students: only their own. Staff: their own department unless they ask for
    another department or for all departments.
    """
    query = select(Complaint)

    if actor.is_student:
        query = query.where(Complaint.student_id == actor.id)
        if department is not None:
            query = query.where(Complaint.department == department.value)
    elif department is not None:
        query = query.where(Complaint.department == department.value)
    elif not all_departments and actor.department_name:
        query = query.where(Complaint.department == actor.department_name)

    if status is not None:
        query = query.where(Complaint.status == status.value)

    query = query.order_by(*_ordering(sort)).offset(offset).limit(min(limit, 1000))

    result = await session.execute(query)
    return [ComplaintResponse.model_validate(c) for c in result.scalars().all()]


async def get_complaint(
    session: AsyncSession,
    actor: CurrentUser,
    complaint_id: str,
) -> ComplaintResponse:
    complaint = await load_complaint(session, complaint_id)
    authorize_view(actor, complaint)
    return ComplaintResponse.model_validate(complaint)


# ── Update ────────────────────────────────────────────────────────────────────

async def update_complaint(
    session: AsyncSession,
    actor: CurrentUser,
    complaint_id: str,
    update: ComplaintUpdate,
) -> ComplaintResponse:
    """
    Apply a partial update under the lifecycle rules.

    Guard: a stale `expected_version`, or a concurrent write that lands
    first, fails with Conflict and leaves the stored record untouched.
    """
    complaint = await load_complaint(session, complaint_id)
    plan = plan_update(actor, complaint, update, now=utcnow())

    if update.expected_version is not None and update.expected_version != complaint.version:
        raise ConflictException(
            f"Complaint '{complaint_id}' was modified by someone else "
            f"(version {complaint.version}). Reload and try again."
        )

    apply_update(complaint, plan)
    try:
        await complaint.save(db=session)
    except StaleDataError:
        await session.rollback()
        raise ConflictException(
            f"Complaint '{complaint_id}' was modified by someone else. Reload and try again."
        )

    if plan.is_transition:
        complaint_transition_count.labels(
            from_status=plan.from_status,
            to_status=plan.to_status,
            actor_role=actor.role.value,
        ).inc()
        logger.info(
            f"Complaint {complaint_id}: {plan.from_status} -> {plan.to_status} by {actor.id}"
        )
    else:
        logger.info(f"Complaint {complaint_id} updated by {actor.id}: {sorted(plan.values)}")

    return ComplaintResponse.model_validate(complaint)


# ── Batch enrichment ──────────────────────────────────────────────────────────

async def batch_generate_solutions(
    session: AsyncSession,
    oracle: ComplaintOracle,
    actor: CurrentUser,
    department: Optional[Department] = None,
) -> BatchResult:
    """
    Draft and store a solution for every active complaint in a department
    that has none yet.

    Items fail independently: an AI failure leaves that complaint's
    solution untouched and the loop moves on. Re-running picks up exactly
    the items that failed, since enriched ones no longer match the filter.
    """
    if not actor.is_department:
        raise PermissionDeniedException("Only department staff can generate solutions.")

    target = department.value if department is not None else actor.department_name
    if not target:
        raise ValidationException("A department is required.")

    result = await session.execute(
        select(Complaint.id, Complaint.complaint_text, Complaint.solution_text)
        .where(
            Complaint.department == target,
            Complaint.status.in_(sorted(ACTIVE_STATUSES)),
        )
        .order_by(asc(Complaint.created_at))
    )
    pending = [
        (complaint_id, complaint_text)
        for complaint_id, complaint_text, solution_text in result.all()
        if not has_solution(solution_text)
    ]

    succeeded = 0
    failed_ids: List[str] = []

    for complaint_id, complaint_text in pending:
        try:
            draft = (await oracle.draft_solution(complaint_text, target)).strip()
        except OracleError as e:
            failed_ids.append(complaint_id)
            batch_item_count.labels(department=target, status="failure").inc()
            logger.warning(f"Batch draft failed for {complaint_id}: {e.detail}")
            continue

        # Re-read: the complaint may have been resolved or closed while the AI was drafting
        complaint = await session.get(Complaint, complaint_id, populate_existing=True)
        if (
            complaint is None
            or complaint.status not in ACTIVE_STATUSES
            or has_solution(complaint.solution_text)
        ):
            batch_item_count.labels(department=target, status="skipped").inc()
            continue

        complaint.solution_text = draft
        try:
            await complaint.save(db=session)
        except StaleDataError:
            await session.rollback()
            failed_ids.append(complaint_id)
            batch_item_count.labels(department=target, status="conflict").inc()
            logger.warning(f"Batch draft for {complaint_id} lost a concurrent update")
            continue

        succeeded += 1
        batch_item_count.labels(department=target, status="success").inc()

    processed = succeeded + len(failed_ids)
    logger.info(
        f"Batch solutions dept={target}: processed={processed} "
        f"succeeded={succeeded} failed={len(failed_ids)}"
    )
    return BatchResult(
        department=target,
        processed=processed,
        succeeded=succeeded,
        failed=len(failed_ids),
        failed_ids=failed_ids,
    )
