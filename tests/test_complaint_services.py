"""
Complaint service tests against an in-memory database.
"""

import pytest

from api.apps.auth.models import Department
from api.apps.complaints.models import Complaint, ComplaintPriority, ComplaintStatus
from api.apps.complaints.schemas import ComplaintCreate, ComplaintSort, ComplaintUpdate
from api.apps.complaints.services import (
    batch_generate_solutions,
    create_complaint,
    get_complaint,
    list_complaints,
    update_complaint,
)
from api.config.settings import settings
from api.utils.exceptions import (
    ConflictException,
    PermissionDeniedException,
    StudentNotFoundException,
    ValidationException,
)

pytestmark = pytest.mark.asyncio


async def file(session, oracle, actor, text="wifi not working", department=Department.IT, **kw):
    complaint, created = await create_complaint(
        session=session,
        oracle=oracle,
        actor=actor,
        data=ComplaintCreate(department=department, complaint_text=text, **kw),
    )
    assert created
    return complaint


# ── Create ────────────────────────────────────────────────────────────────────

async def test_student_creates_for_self(session, oracle, student):
    complaint = await file(session, oracle, student)

    assert complaint.id.startswith("TCKT")
    assert complaint.student_id == student.id
    assert complaint.student_name == student.name
    assert complaint.status == ComplaintStatus.OPEN
    assert complaint.priority == ComplaintPriority.HIGH
    assert complaint.solution_text == ""
    assert complaint.resolved_at is None
    assert complaint.ai_recommendation == "Guidance: wifi not working"
    assert complaint.version == 1


async def test_student_cannot_file_for_someone_else(session, oracle, student, other_student):
    complaint = await file(session, oracle, student, student_id=other_student.id)

    assert complaint.student_id == student.id


async def test_staff_creates_for_student_case_insensitively(session, oracle, it_staff, student):
    complaint = await file(session, oracle, it_staff, student_id=student.id.lower())

    assert complaint.student_id == student.id
    assert complaint.department == "IT"
    assert complaint.status == ComplaintStatus.OPEN
    assert complaint.priority in set(ComplaintPriority)


async def test_staff_create_with_unknown_student_fails(session, oracle, it_staff):
    with pytest.raises(StudentNotFoundException):
        await file(session, oracle, it_staff, student_id="S0000000000000")

    assert oracle.calls == []


async def test_staff_cannot_file_for_staff_account(session, oracle, it_staff, finance_staff):
    with pytest.raises(StudentNotFoundException):
        await file(session, oracle, it_staff, student_id=finance_staff.id)


async def test_staff_create_without_student_id_fails(session, oracle, it_staff):
    with pytest.raises(ValidationException):
        await file(session, oracle, it_staff)


async def test_create_falls_back_when_oracle_fails(session, oracle, student):
    oracle.failing = {"classify_priority", "draft_staff_guidance"}

    complaint = await file(session, oracle, student)

    assert complaint.priority == ComplaintPriority.MEDIUM
    assert complaint.ai_recommendation == settings.FALLBACK_RECOMMENDATION
    assert complaint.status == ComplaintStatus.OPEN


async def test_idempotent_replay_returns_stored_complaint(session, oracle, student):
    data = ComplaintCreate(department=Department.IT, complaint_text="printer jammed")

    first, created = await create_complaint(session, oracle, student, data, idempotency_key="abc-123")
    calls_after_first = len(oracle.calls)
    second, replayed_created = await create_complaint(session, oracle, student, data, idempotency_key="abc-123")

    assert created is True
    assert replayed_created is False
    assert second.id == first.id
    assert len(oracle.calls) == calls_after_first
    assert len(await list_complaints(session, student)) == 1


async def test_same_key_from_different_students_creates_two(session, oracle, student, other_student):
    data = ComplaintCreate(department=Department.IT, complaint_text="printer jammed")

    a, _ = await create_complaint(session, oracle, student, data, idempotency_key="k1")
    b, created = await create_complaint(session, oracle, other_student, data, idempotency_key="k1")

    assert created is True
    assert a.id != b.id


# ── Read ──────────────────────────────────────────────────────────────────────

async def test_listing_is_scoped_to_caller(session, oracle, student, other_student, it_staff):
    mine = await file(session, oracle, student, text="wifi")
    await file(session, oracle, other_student, text="fees", department=Department.FINANCIAL_SUPPORT)
    theirs_it = await file(session, oracle, other_student, text="laptop")

    student_view = await list_complaints(session, student)
    assert [c.id for c in student_view] == [mine.id]

    staff_view = await list_complaints(session, it_staff)
    assert {c.id for c in staff_view} == {mine.id, theirs_it.id}

    everything = await list_complaints(session, it_staff, all_departments=True)
    assert len(everything) == 3

    finance = await list_complaints(session, it_staff, department=Department.FINANCIAL_SUPPORT)
    assert [c.complaint_text for c in finance] == ["fees"]


async def test_listing_filters_and_sorts(session, oracle, student, it_staff):
    oracle.priority = ComplaintPriority.LOW
    low = await file(session, oracle, student, text="low")
    oracle.priority = ComplaintPriority.URGENT
    urgent = await file(session, oracle, student, text="urgent")
    oracle.priority = ComplaintPriority.MEDIUM
    medium = await file(session, oracle, student, text="medium")

    by_priority = await list_complaints(session, it_staff, sort=ComplaintSort.PRIORITY)
    assert [c.id for c in by_priority] == [urgent.id, medium.id, low.id]

    oldest_first = await list_complaints(session, it_staff, sort=ComplaintSort.DATE_ASC)
    assert [c.id for c in oldest_first] == [low.id, urgent.id, medium.id]

    await update_complaint(session, student, low.id, ComplaintUpdate(status=ComplaintStatus.CLOSED))
    open_only = await list_complaints(session, it_staff, status=ComplaintStatus.OPEN)
    assert {c.id for c in open_only} == {urgent.id, medium.id}

    by_status = await list_complaints(session, it_staff, sort=ComplaintSort.STATUS)
    assert by_status[-1].id == low.id


async def test_get_complaint_enforces_ownership(session, oracle, student, other_student, finance_staff):
    complaint = await file(session, oracle, student)

    assert (await get_complaint(session, student, complaint.id)).id == complaint.id
    assert (await get_complaint(session, finance_staff, complaint.id)).id == complaint.id
    with pytest.raises(PermissionDeniedException):
        await get_complaint(session, other_student, complaint.id)


# ── Update ────────────────────────────────────────────────────────────────────

async def test_close_then_reopen_round_trip(session, oracle, student, it_staff):
    complaint = await file(session, oracle, student)

    closed = await update_complaint(
        session, it_staff, complaint.id,
        ComplaintUpdate(status=ComplaintStatus.CLOSED, solution_text="X"),
    )
    assert closed.status == ComplaintStatus.CLOSED
    assert closed.resolved_at is not None
    assert closed.version == 2

    reopened = await update_complaint(
        session, student, complaint.id, ComplaintUpdate(status=ComplaintStatus.REOPENED)
    )
    assert reopened.status == ComplaintStatus.REOPENED
    assert reopened.solution_text == ""
    assert reopened.resolved_at is None
    assert reopened.version == 3


async def test_student_self_close(session, oracle, student):
    complaint = await file(session, oracle, student)

    closed = await update_complaint(
        session, student, complaint.id, ComplaintUpdate(status=ComplaintStatus.CLOSED)
    )

    assert closed.status == ComplaintStatus.CLOSED
    assert closed.resolved_at is not None
    assert closed.solution_text == ""


async def test_close_without_solution_leaves_record_unchanged(session, oracle, student, it_staff):
    complaint = await file(session, oracle, student)

    with pytest.raises(ValidationException):
        await update_complaint(
            session, it_staff, complaint.id,
            ComplaintUpdate(status=ComplaintStatus.CLOSED, solution_text="   "),
        )

    stored = await get_complaint(session, it_staff, complaint.id)
    assert stored.status == ComplaintStatus.OPEN
    assert stored.solution_text == ""
    assert stored.version == 1


async def test_reopen_by_staff_or_stranger_is_forbidden(session, oracle, student, other_student, it_staff):
    complaint = await file(session, oracle, student)
    await update_complaint(session, student, complaint.id, ComplaintUpdate(status=ComplaintStatus.CLOSED))

    for actor in (it_staff, other_student):
        with pytest.raises(PermissionDeniedException):
            await update_complaint(
                session, actor, complaint.id, ComplaintUpdate(status=ComplaintStatus.REOPENED)
            )


async def test_stale_expected_version_conflicts(session, oracle, student, it_staff):
    complaint = await file(session, oracle, student)
    await update_complaint(
        session, it_staff, complaint.id,
        ComplaintUpdate(department=Department.STUDENT_AFFAIRS, expected_version=1),
    )

    with pytest.raises(ConflictException):
        await update_complaint(
            session, it_staff, complaint.id,
            ComplaintUpdate(solution_text="late edit", expected_version=1),
        )

    stored = await get_complaint(session, it_staff, complaint.id)
    assert stored.department == Department.STUDENT_AFFAIRS.value
    assert stored.solution_text == ""


async def test_concurrent_write_conflicts(session, session_factory, oracle, student, it_staff):
    complaint = await file(session, oracle, student)
    held = await Complaint.get_by_id(session, complaint.id)
    assert held.version == 1

    async with session_factory() as other:
        await update_complaint(
            other, it_staff, complaint.id, ComplaintUpdate(solution_text="first writer")
        )

    with pytest.raises(ConflictException):
        await update_complaint(
            session, it_staff, complaint.id, ComplaintUpdate(solution_text="second writer")
        )

    async with session_factory() as fresh:
        stored = await Complaint.get_by_id(fresh, complaint.id)
        assert stored.solution_text == "first writer"
        assert stored.version == 2


# ── Batch ─────────────────────────────────────────────────────────────────────

async def test_batch_items_fail_independently(session, oracle, student, it_staff):
    first = await file(session, oracle, student, text="wifi one")
    second = await file(session, oracle, student, text="wifi two")
    third = await file(session, oracle, student, text="wifi three")
    oracle.failing_texts = {"wifi two"}

    result = await batch_generate_solutions(session, oracle, it_staff)

    assert result.processed == 3
    assert result.succeeded == 2
    assert result.failed == 1
    assert result.failed_ids == [second.id]

    assert (await get_complaint(session, it_staff, first.id)).solution_text.startswith("[IT]")
    assert (await get_complaint(session, it_staff, second.id)).solution_text == ""
    assert (await get_complaint(session, it_staff, third.id)).solution_text.startswith("[IT]")


async def test_batch_rerun_only_touches_unenriched(session, oracle, student, it_staff):
    await file(session, oracle, student, text="wifi one")
    await file(session, oracle, student, text="wifi two")
    oracle.failing_texts = {"wifi two"}
    await batch_generate_solutions(session, oracle, it_staff)

    oracle.failing_texts = set()
    retry = await batch_generate_solutions(session, oracle, it_staff)

    assert retry.processed == 1
    assert retry.succeeded == 1


async def test_batch_skips_closed_and_other_departments(session, oracle, student, it_staff):
    closed = await file(session, oracle, student, text="closed one")
    await update_complaint(session, student, closed.id, ComplaintUpdate(status=ComplaintStatus.CLOSED))
    await file(session, oracle, student, text="fees", department=Department.FINANCIAL_SUPPORT)
    await file(session, oracle, student, text="wifi")

    result = await batch_generate_solutions(session, oracle, it_staff)

    assert result.department == "IT"
    assert result.processed == 1


async def test_batch_is_staff_only(session, oracle, student):
    with pytest.raises(PermissionDeniedException):
        await batch_generate_solutions(session, oracle, student)


async def test_batch_skips_complaint_closed_while_drafting(
    session, session_factory, oracle, student, it_staff
):
    complaint = await file(session, oracle, student)
    draft = oracle.draft_solution

    async def draft_while_student_closes(complaint_text, department):
        async with session_factory() as other:
            await update_complaint(
                other, student, complaint.id, ComplaintUpdate(status=ComplaintStatus.CLOSED)
            )
        return await draft(complaint_text, department)

    oracle.draft_solution = draft_while_student_closes

    result = await batch_generate_solutions(session, oracle, it_staff)

    assert result.processed == 0
    assert result.succeeded == 0

    async with session_factory() as fresh:
        stored = await Complaint.get_by_id(fresh, complaint.id)
        assert stored.status == ComplaintStatus.CLOSED.value
        assert stored.solution_text == ""


async def test_batch_treats_whitespace_solution_as_missing(
    session, session_factory, oracle, student, it_staff
):
    complaint = await file(session, oracle, student)
    async with session_factory() as other:
        row = await Complaint.get_by_id(other, complaint.id)
        row.solution_text = "\n\t"
        await row.save(db=other)

    result = await batch_generate_solutions(session, oracle, it_staff)

    assert result.processed == 1
    assert result.succeeded == 1
    stored = await get_complaint(session, it_staff, complaint.id)
    assert stored.solution_text.startswith("[IT]")
