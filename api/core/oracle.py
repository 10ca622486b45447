"""
AI oracle for complaint enrichment.

Wraps Google Gemini behind five capabilities:
- classify_priority     → ComplaintPriority            (structured JSON)
- suggest_department    → DepartmentSuggestion         (structured JSON)
- draft_staff_guidance  → text, shown to staff at creation time
- draft_solution        → text, a reply staff may send to the student
- advise_student        → text, whether the student should accept a resolution

Every call is bounded by ORACLE_TIMEOUT_SECONDS. Any failure surfaces as
OracleError; JSON that does not match the requested shape surfaces as
OracleMalformedResponse. Callers decide whether to fall back or propagate.
"""

import asyncio
import json
import re
import time
from typing import Any, Optional, TypeVar

from google import genai
from google.genai import types
from pydantic import BaseModel, Field, ValidationError

from api.apps.auth.models import Department, VALID_DEPARTMENTS
from api.apps.complaints.models import ComplaintPriority
from api.config.settings import settings
from api.utils.exceptions import OracleError, OracleMalformedResponse
from api.utils.logger import get_logger
from api.utils.metrics import oracle_call_count, oracle_latency

logger = get_logger(__name__)

S = TypeVar("S", bound=BaseModel)

_CODE_FENCE = re.compile(r"```(?:json)?\s*|```")


class PriorityClassification(BaseModel):
    """Structured output for priority classification."""
    priority: ComplaintPriority = Field(
        description="Urgency of the complaint: Urgent, High, Medium or Low"
    )


class DepartmentSuggestion(BaseModel):
    """Structured output for department routing."""
    department: Department = Field(
        description="The single department best placed to handle the complaint"
    )
    reason: str = Field(
        description="One or two sentences explaining the choice, in the complaint's language"
    )


class ComplaintOracle:
    """
    Gemini-backed oracle. One instance per process (see `get_oracle`).

    `client` can be injected; anything exposing
    `client.aio.models.generate_content(model=, contents=, config=)` works.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        client: Any = None,
    ):
        self.model = model or settings.GEMINI_MODEL
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.ORACLE_TIMEOUT_SECONDS
        )
        if client is None:
            client = genai.Client(
                api_key=api_key or settings.GEMINI_API_KEY,
                http_options=types.HttpOptions(timeout=int(self.timeout_seconds * 1000)),
            )
        self.client = client

    # ── Capabilities ──────────────────────────────────────────────────────────

    async def classify_priority(self, complaint_text: str) -> ComplaintPriority:
        prompt = f"""Analyze the urgency of the following student complaint and classify it into one of four priority levels: "Urgent", "High", "Medium", "Low".
Respond in JSON format with a single key "priority".

Complaint: "{complaint_text}\""""
        result = await self._generate_json("classify_priority", prompt, PriorityClassification)
        return result.priority

    async def suggest_department(self, complaint_text: str) -> DepartmentSuggestion:
        departments = '", "'.join(VALID_DEPARTMENTS)
        prompt = f"""Analyze the following student complaint to determine the most relevant department and give a brief reason.
The available departments are: "{departments}".
Write the reason in the SAME language as the complaint (for example Arabic or English).

Complaint: "{complaint_text}"

Respond in JSON format with "department" and "reason" keys."""
        return await self._generate_json("suggest_department", prompt, DepartmentSuggestion)

    async def draft_staff_guidance(self, complaint_text: str) -> str:
        prompt = f"""You are an AI assistant for the help desk of {settings.UNIVERSITY_NAME}. A student has filed a complaint.
Give the staff member handling this ticket a concise, actionable recommendation.
Write it in the SAME language as the complaint (for example Arabic or English).

Student Complaint: "{complaint_text}"

Actionable Recommendation for Staff:"""
        return await self._generate_text("draft_staff_guidance", prompt)

    async def draft_solution(self, complaint_text: str, department: str) -> str:
        prompt = f"""You are an AI assistant for a help desk staff member in the "{department}" department of {settings.UNIVERSITY_NAME}.
Write a polite, professional and empathetic response to the student's complaint.
Acknowledge the issue and propose a clear solution or next step.
Write the entire response in the SAME language as the complaint (for example Arabic or English).

Student's Complaint: "{complaint_text}"

Draft of Solution for Student:"""
        return await self._generate_text("draft_solution", prompt)

    async def advise_student(self, complaint_text: str, solution_text: str) -> str:
        prompt = f"""You are an impartial AI student advocate.
Read the student's complaint and the solution provided by university staff, then advise the student
concisely on whether the solution is adequate or whether they should consider reopening the ticket.
Write the entire response in the SAME language as the complaint (for example Arabic or English).

Original Complaint: "{complaint_text}"
Staff's Solution: "{solution_text}"

AI Advice for Student:"""
        return await self._generate_text("advise_student", prompt)

    # ── Transport ─────────────────────────────────────────────────────────────

    async def _generate_text(self, capability: str, prompt: str) -> str:
        config = types.GenerateContentConfig(temperature=0.4, max_output_tokens=800)
        return await self._call(capability, prompt, config)

    async def _generate_json(self, capability: str, prompt: str, schema: type[S]) -> S:
        config = types.GenerateContentConfig(
            temperature=0.0,  # Deterministic classification
            response_mime_type="application/json",
            response_schema=schema,
        )
        raw = await self._call(capability, prompt, config)
        try:
            return schema.model_validate(_load_json(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            oracle_call_count.labels(capability=capability, status="malformed").inc()
            logger.warning(f"Oracle {capability} returned malformed JSON: {e}")
            raise OracleMalformedResponse() from e

    async def _call(
        self, capability: str, prompt: str, config: types.GenerateContentConfig
    ) -> str:
        start = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=self.model,
                    contents=prompt,
                    config=config,
                ),
                timeout=self.timeout_seconds,
            )
            text = (response.text or "").strip()
        except asyncio.TimeoutError as e:
            oracle_call_count.labels(capability=capability, status="timeout").inc()
            logger.error(f"Oracle {capability} timed out after {self.timeout_seconds}s")
            raise OracleError("The AI service took too long to respond.") from e
        except Exception as e:
            oracle_call_count.labels(capability=capability, status="error").inc()
            logger.error(f"Oracle {capability} failed: {e}")
            raise OracleError() from e
        finally:
            oracle_latency.labels(capability=capability).observe(time.perf_counter() - start)

        if not text:
            oracle_call_count.labels(capability=capability, status="empty").inc()
            logger.warning(f"Oracle {capability} returned an empty response")
            raise OracleError("The AI service returned an empty response.")

        oracle_call_count.labels(capability=capability, status="success").inc()
        logger.info(f"Oracle {capability}: {len(text)} chars, model={self.model}")
        return text


def _load_json(raw: str) -> Any:
    """Parse JSON, retrying once with markdown code fences stripped."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return json.loads(_CODE_FENCE.sub("", raw).strip())
