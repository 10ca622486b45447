"""
Advisory AI services.

Side-effect free: nothing here writes to the database. The caller reads
the suggestion and decides whether to apply it through a normal update.
AI failures propagate (502), since the AI result is the whole point.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from api.apps.auth.models import Department
from api.apps.auth.schemas import CurrentUser
from api.apps.ai.schemas import (
    SuggestDepartmentResponse,
    SolutionDraftResponse,
    StudentRecommendationResponse,
)
from api.apps.complaints.lifecycle import authorize_view
from api.apps.complaints.services import load_complaint
from api.config.settings import settings
from api.core.cache import CacheManager
from api.core.oracle import ComplaintOracle
from api.utils.exceptions import ValidationException
from api.utils.logger import get_logger

logger = get_logger(__name__)


async def suggest_department(
    cache: CacheManager,
    oracle: ComplaintOracle,
    complaint_text: str,
) -> SuggestDepartmentResponse:
    """
    Suggest the department that should own a complaint.

    Answers are cached by normalised text; a cache outage only costs an AI call.
    """
    key = CacheManager.suggestion_key(complaint_text)
    cached = await cache.get(key)
    if cached:
        logger.info(f"Department suggestion cache hit: {key}")
        return SuggestDepartmentResponse(**cached, cached=True)

    suggestion = await oracle.suggest_department(complaint_text)
    await cache.set(
        key,
        {"department": suggestion.department.value, "reason": suggestion.reason},
        ttl=settings.SUGGESTION_CACHE_TTL,
    )

    logger.info(f"Department suggested: {suggestion.department.value}")
    return SuggestDepartmentResponse(
        department=suggestion.department,
        reason=suggestion.reason,
    )


async def draft_solution(
    session: AsyncSession,
    oracle: ComplaintOracle,
    actor: CurrentUser,
    complaint_id: str,
    department: Optional[Department] = None,
) -> SolutionDraftResponse:
    complaint = await load_complaint(session, complaint_id)
    authorize_view(actor, complaint)

    target = department.value if department is not None else complaint.department
    text = await oracle.draft_solution(complaint.complaint_text, target)

    logger.info(f"Solution drafted for {complaint_id} as {target} by {actor.id}")
    return SolutionDraftResponse(solution_text=text)


async def advise_student(
    session: AsyncSession,
    oracle: ComplaintOracle,
    actor: CurrentUser,
    complaint_id: str,
) -> StudentRecommendationResponse:
    """
    Advise the student whether the staff solution resolves their complaint.

    Guard: there must be a stored solution to judge.
    """
    complaint = await load_complaint(session, complaint_id)
    authorize_view(actor, complaint)

    solution = (complaint.solution_text or "").strip()
    if not solution:
        raise ValidationException("This complaint has no solution to evaluate yet.")

    text = await oracle.advise_student(complaint.complaint_text, solution)

    logger.info(f"Student advice generated for {complaint_id} by {actor.id}")
    return StudentRecommendationResponse(recommendation_text=text)
