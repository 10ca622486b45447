"""
Complaints router.

Entry/exit only, no logic here. Calls complaint services.
Batch drafting can run inline or as a Celery background task.
"""

from typing import Optional

from celery.result import AsyncResult
from fastapi import APIRouter, Depends, Header, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.apps.auth.models import Department
from api.apps.auth.schemas import CurrentUser
from api.apps.auth.services import verify_user
from api.apps.complaints.models import ComplaintStatus
from api.apps.complaints.schemas import (
    BatchGenerateRequest,
    BatchResult,
    ComplaintCreate,
    ComplaintSort,
    ComplaintUpdate,
    TaskAccepted,
    TaskStatusResponse,
)
from api.apps.complaints.services import (
    batch_generate_solutions,
    create_complaint,
    get_complaint,
    list_complaints,
    update_complaint,
)
from api.apps.complaints.tasks import batch_generate_solutions_task
from api.config.settings import settings
from api.core.celery_app import celery_app
from api.core.dependencies import get_oracle
from api.core.oracle import ComplaintOracle
from api.core.rate_limit import limiter
from api.db.database import get_session
from api.utils.exceptions import PermissionDeniedException
from api.utils.logger import get_logger
from api.utils.responses import success_response

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/complaints", tags=["Complaints"])


@router.get("")
async def get_complaints(
    status: Optional[ComplaintStatus] = Query(default=None),
    sort: ComplaintSort = Query(default=ComplaintSort.DATE_DESC),
    department: Optional[Department] = Query(default=None),
    all_departments: bool = Query(default=False, alias="allDepartments"),
    limit: int = Query(default=500, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    user: CurrentUser = Depends(verify_user),
    session: AsyncSession = Depends(get_session),
):
    """
    Complaints visible to the caller.

    Students get their own. Staff get their department unless they pass
    `department` or `allDepartments=true`.
    """
    complaints = await list_complaints(
        session=session,
        actor=user,
        status=status,
        sort=sort,
        department=department,
        all_departments=all_departments,
        limit=limit,
        offset=offset,
    )
    return success_response(
        status_code=200,
        message=f"{len(complaints)} complaints",
        data=complaints,
    )


@router.post("")
async def post_complaint(
    data: ComplaintCreate,
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key", max_length=128),
    user: CurrentUser = Depends(verify_user),
    session: AsyncSession = Depends(get_session),
    oracle: ComplaintOracle = Depends(get_oracle),
):
    """
    File a complaint. Priority and staff guidance are generated by the AI.

    Send an `Idempotency-Key` header to make retries safe: a repeat returns
    the stored complaint with 200 instead of 201.
    """
    complaint, created = await create_complaint(
        session=session,
        oracle=oracle,
        actor=user,
        data=data,
        idempotency_key=idempotency_key,
    )
    if created:
        return success_response(
            status_code=201,
            message="Complaint submitted successfully",
            data=complaint,
        )
    return success_response(
        status_code=200,
        message="Complaint already submitted",
        data=complaint,
    )


@router.post("/generate-solutions")
@limiter.limit(settings.AI_RATE_LIMIT)
async def generate_solutions(
    request: Request,
    payload: Optional[BatchGenerateRequest] = None,
    user: CurrentUser = Depends(verify_user),
    session: AsyncSession = Depends(get_session),
    oracle: ComplaintOracle = Depends(get_oracle),
):
    """Draft solutions for every unresolved complaint in a department, inline."""
    result = await batch_generate_solutions(
        session=session,
        oracle=oracle,
        actor=user,
        department=payload.department if payload else None,
    )
    return success_response(
        status_code=200,
        message=f"Solutions generated for {result.succeeded} of {result.processed} complaints",
        data=result,
    )


@router.post("/generate-solutions/async", status_code=202)
@limiter.limit(settings.AI_RATE_LIMIT)
async def generate_solutions_async(
    request: Request,
    payload: Optional[BatchGenerateRequest] = None,
    user: CurrentUser = Depends(verify_user),
):
    """
    Queue batch drafting on a Celery worker and return 202 with a task id.

    Poll `GET /api/v1/complaints/tasks/{task_id}` for the result.
    """
    if not user.is_department:
        raise PermissionDeniedException("Only department staff can generate solutions.")

    department = payload.department if payload and payload.department else None
    task = batch_generate_solutions_task.delay(
        actor=user.model_dump(mode="json"),
        department=department.value if department else None,
    )

    logger.info(f"Batch solutions dispatched: task_id={task.id}, by={user.id}")
    return success_response(
        status_code=202,
        message=f"Batch accepted. Poll /tasks/{task.id} for status.",
        data=TaskAccepted(task_id=task.id),
    )


@router.get("/tasks/{task_id}")
async def get_task_status(
    task_id: str,
    user: CurrentUser = Depends(verify_user),
):
    """
    Poll a batch task.

    Status is one of PENDING, STARTED, RETRY, SUCCESS, FAILURE.
    """
    if not user.is_department:
        raise PermissionDeniedException("Only department staff can view batch tasks.")

    result = AsyncResult(task_id, app=celery_app)
    response = TaskStatusResponse(task_id=task_id, status=result.status)

    if result.successful():
        response.result = BatchResult.model_validate(result.result)
    elif result.failed():
        response.error = str(result.result)

    return success_response(status_code=200, message=response.status, data=response)


@router.get("/{complaint_id}")
async def get_complaint_by_id(
    complaint_id: str,
    user: CurrentUser = Depends(verify_user),
    session: AsyncSession = Depends(get_session),
):
    complaint = await get_complaint(session=session, actor=user, complaint_id=complaint_id)
    return success_response(status_code=200, message="Complaint", data=complaint)


@router.put("/{complaint_id}")
async def put_complaint(
    complaint_id: str,
    data: ComplaintUpdate,
    user: CurrentUser = Depends(verify_user),
    session: AsyncSession = Depends(get_session),
):
    """
    Update department, status or solution text.

    Students may only close or reopen their own complaint. Pass
    `expectedVersion` to fail with 409 instead of overwriting a newer edit.
    """
    complaint = await update_complaint(
        session=session,
        actor=user,
        complaint_id=complaint_id,
        update=data,
    )
    return success_response(
        status_code=200,
        message="Complaint updated successfully",
        data=complaint,
    )
