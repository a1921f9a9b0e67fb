"""
Pytest configuration and fixtures
"""
import base64
import json

import httpx
import pytest

from redline.model_client import ModelClient
from redline.session import UploadSession


def message(text):
    """A Messages API reply carrying one text block."""
    return {
        "id": "msg_test",
        "type": "message",
        "role": "assistant",
        "model": "claude-test",
        "content": [{"type": "text", "text": text}],
        "stop_reason": "end_turn",
        "usage": {"input_tokens": 10, "output_tokens": 20},
    }


class FakeModel:
    """Stands in for the Messages endpoint.

    Queue replies with ``reply``/``fail``; every request body is kept in
    ``requests`` for assertions.
    """

    def __init__(self):
        self.requests = []
        self.replies = []

    def reply(self, payload=None, status=200, text=None):
        self.replies.append(("json", status, payload if text is None else text))
        return self

    def reply_text(self, text):
        return self.reply(message(text))

    def reply_report(self, report):
        return self.reply_text(json.dumps(report))

    def fail(self, message="connection refused"):
        self.replies.append(("error", 0, message))
        return self

    def then(self, handler):
        self.replies.append(("call", 0, handler))
        return self

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        kind, status, value = self.replies.pop(0)
        if kind == "error":
            raise httpx.ConnectError(value, request=request)
        if kind == "call":
            return await value(request)
        if isinstance(value, str):
            return httpx.Response(status, text=value)
        return httpx.Response(status, json=value)

    def client(self) -> ModelClient:
        return ModelClient(base_url="https://model.test", api_key="test-key",
                           transport=httpx.MockTransport(self.handle))


@pytest.fixture
def fake_model():
    return FakeModel()


@pytest.fixture
def report_dict():
    return {
        "summary": "A workable lease with two terms that need to change before signing.",
        "grade": "B",
        "green_flags": [
            {"title": "Signage allowed", "detail": "Tenant may place a name plate on the suite door.", "section": "12.1"},
        ],
        "red_flags": [
            {"title": "No cure period", "severity": "high", "detail": "Any late payment is an immediate default.",
             "fix": "Ask for a 10-day cure period.", "section": "18"},
            {"title": "Uncapped CAM", "severity": "medium", "detail": "CAM charges can rise without limit.",
             "fix": "Cap CAM increases at 5% per year.", "section": None},
        ],
        "attention": [
            {"title": "Hours of operation", "detail": "Building hours end at 7pm.", "ask": "Can I see clients after 7pm?"},
        ],
        "missing": [
            {"title": "Exclusive use", "detail": "Nothing stops the landlord leasing to a competing salon."},
        ],
        "money": {"rent": "$1,200/month", "deposit": "$2,400", "escalation": "3% per year",
                  "fees": ["CAM $150/month", "Marketing $25/month"]},
        "dates": {"term": "3 years", "notice": "90 days", "renewal": "One 3-year option"},
        "priorities": ["Add a cure period", "Cap CAM increases", "Get exclusive use"],
    }


@pytest.fixture
def upload():
    raw = b"%PDF-1.4 lease"
    return UploadSession(filename="lease.pdf", size=len(raw), media_type="application/pdf",
                         data=base64.b64encode(raw).decode("ascii"))
