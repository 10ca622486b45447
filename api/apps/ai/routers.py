"""
Advisory AI router.

Entry/exit only, no logic here. All endpoints are rate limited per client.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.apps.ai.schemas import SuggestDepartmentRequest, GenerateSolutionRequest
from api.apps.ai.services import suggest_department, draft_solution, advise_student
from api.apps.auth.schemas import CurrentUser
from api.apps.auth.services import verify_user
from api.config.settings import settings
from api.core.cache import CacheManager
from api.core.dependencies import get_cache, get_oracle
from api.core.oracle import ComplaintOracle
from api.core.rate_limit import limiter
from api.db.database import get_session
from api.utils.responses import success_response

router = APIRouter(prefix="/api/v1", tags=["AI"])


@router.post("/ai/suggest-department")
@limiter.limit(settings.AI_RATE_LIMIT)
async def post_suggest_department(
    request: Request,
    payload: SuggestDepartmentRequest,
    user: CurrentUser = Depends(verify_user),
    cache: CacheManager = Depends(get_cache),
    oracle: ComplaintOracle = Depends(get_oracle),
):
    """Suggest which department should handle a complaint draft."""
    suggestion = await suggest_department(
        cache=cache, oracle=oracle, complaint_text=payload.complaint_text
    )
    return success_response(status_code=200, message="Department suggested", data=suggestion)


@router.post("/complaints/{complaint_id}/generate-solution")
@limiter.limit(settings.AI_RATE_LIMIT)
async def post_generate_solution(
    request: Request,
    complaint_id: str,
    payload: Optional[GenerateSolutionRequest] = None,
    user: CurrentUser = Depends(verify_user),
    session: AsyncSession = Depends(get_session),
    oracle: ComplaintOracle = Depends(get_oracle),
):
    """Draft a reply to the student. Nothing is saved."""
    draft = await draft_solution(
        session=session,
        oracle=oracle,
        actor=user,
        complaint_id=complaint_id,
        department=payload.department if payload else None,
    )
    return success_response(status_code=200, message="Solution drafted", data=draft)


@router.post("/complaints/{complaint_id}/generate-student-recommendation")
@limiter.limit(settings.AI_RATE_LIMIT)
async def post_generate_student_recommendation(
    request: Request,
    complaint_id: str,
    user: CurrentUser = Depends(verify_user),
    session: AsyncSession = Depends(get_session),
    oracle: ComplaintOracle = Depends(get_oracle),
):
    """Advise the student whether to accept the staff solution."""
    advice = await advise_student(
        session=session, oracle=oracle, actor=user, complaint_id=complaint_id
    )
    return success_response(status_code=200, message="Recommendation generated", data=advice)
