"""
ComplaintOracle tests against a fake Gemini client.
"""

import asyncio
from types import SimpleNamespace

import pytest

from api.apps.auth.models import Department
from api.apps.complaints.models import ComplaintPriority
from api.core.oracle import ComplaintOracle
from api.utils.exceptions import OracleError, OracleMalformedResponse

pytestmark = pytest.mark.asyncio


class FakeModels:
    def __init__(self, reply=None, error=None, delay=0.0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.requests = []

    async def generate_content(self, model, contents, config):
        self.requests.append({"model": model, "contents": contents, "config": config})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.reply)


def make_oracle(reply=None, error=None, delay=0.0, timeout_seconds=5.0):
    models = FakeModels(reply=reply, error=error, delay=delay)
    client = SimpleNamespace(aio=SimpleNamespace(models=models))
    oracle = ComplaintOracle(model="gemini-test", timeout_seconds=timeout_seconds, client=client)
    return oracle, models


async def test_classify_priority_parses_json():
    oracle, models = make_oracle(reply='{"priority": "Urgent"}')

    priority = await oracle.classify_priority("My exam is tomorrow and the portal is down")

    assert priority == ComplaintPriority.URGENT
    request = models.requests[0]
    assert request["model"] == "gemini-test"
    assert "portal is down" in request["contents"]
    assert request["config"].response_mime_type == "application/json"


async def test_suggest_department_strips_code_fences():
    reply = '```json\n{"department": "Financial Support", "reason": "Scholarship payment."}\n```'
    oracle, _ = make_oracle(reply=reply)

    suggestion = await oracle.suggest_department("My scholarship has not been paid")

    assert suggestion.department == Department.FINANCIAL_SUPPORT
    assert suggestion.reason == "Scholarship payment."


async def test_suggest_department_outside_fixed_set_is_malformed():
    oracle, _ = make_oracle(reply='{"department": "Cafeteria", "reason": "Food."}')

    with pytest.raises(OracleMalformedResponse) as exc_info:
        await oracle.suggest_department("The food is cold")

    assert exc_info.value.status_code == 502
    assert exc_info.value.code == "oracle_malformed_response"


async def test_non_json_reply_is_malformed():
    oracle, _ = make_oracle(reply="I think this is urgent.")

    with pytest.raises(OracleMalformedResponse):
        await oracle.classify_priority("help")


async def test_missing_key_is_malformed():
    oracle, _ = make_oracle(reply='{"urgency": "High"}')

    with pytest.raises(OracleMalformedResponse):
        await oracle.classify_priority("help")


async def test_text_capabilities_return_stripped_text():
    oracle, models = make_oracle(reply="  Please restart your device.  \n")

    assert await oracle.draft_solution("wifi down", "IT") == "Please restart your device."
    assert await oracle.draft_staff_guidance("wifi down") == "Please restart your device."
    assert await oracle.advise_student("wifi down", "Restart it") == "Please restart your device."

    assert '"IT"' in models.requests[0]["contents"]
    assert "Restart it" in models.requests[2]["contents"]


async def test_sdk_failure_becomes_oracle_error():
    oracle, _ = make_oracle(error=RuntimeError("503 Service Unavailable"))

    with pytest.raises(OracleError) as exc_info:
        await oracle.draft_solution("wifi down", "IT")

    assert not isinstance(exc_info.value, OracleMalformedResponse)
    assert exc_info.value.code == "oracle_error"


async def test_empty_reply_becomes_oracle_error():
    oracle, _ = make_oracle(reply="")

    with pytest.raises(OracleError):
        await oracle.advise_student("wifi down", "Restart it")


async def test_slow_reply_times_out_as_oracle_error():
    oracle, _ = make_oracle(reply="late", delay=1.0, timeout_seconds=0.05)

    with pytest.raises(OracleError) as exc_info:
        await oracle.draft_staff_guidance("wifi down")

    assert "too long" in exc_info.value.detail
