# workflows.py
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from . import settings
from .documents import document_block
from .model_client import ModelClient, ModelError, ModelRejected, response_text
from .prompts import ANALYSIS_INSTRUCTION, ANALYSIS_PROMPT, EMAIL_PROMPT, email_request_text
from .report import Report, parse_report

logger = logging.getLogger(__name__)

EMAIL_FAILURE = "Failed to generate email. Please try again."


class AnalysisFailed(Exception):
    """Single failure outcome of an analysis; the message is shown to the user as-is."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def build_analysis_request(data: str, media_type: Optional[str] = None) -> Dict[str, Any]:
    return {
        "model": settings.MODEL_NAME,
        "max_tokens": settings.ANALYSIS_MAX_TOKENS,
        "system": ANALYSIS_PROMPT,
        "messages": [{
            "role": "user",
            "content": [
                document_block(data, media_type),
                {"type": "text", "text": ANALYSIS_INSTRUCTION},
            ],
        }],
    }


async def analyze(client: ModelClient, data: str, media_type: Optional[str] = None) -> Report:
    """Send a lease to the model and parse its assessment.

    Transport errors, a model-reported error, and unparseable output all raise
    ``AnalysisFailed``. Nothing is retried.
    """
    if not data:
        raise ValueError("No document to analyze")

    try:
        body = build_analysis_request(data, media_type)
    except ValueError as e:
        raise AnalysisFailed(str(e))

    try:
        message = await client.create_message(body)
    except ModelRejected as e:
        logger.warning("Model rejected analysis: %s", e)
        raise AnalysisFailed(str(e))
    except ModelError as e:
        logger.warning("Analysis request failed: %s", e)
        raise AnalysisFailed(str(e))

    text = response_text(message)
    try:
        report = parse_report(text)
    except ValidationError as e:
        logger.warning("Unparseable analysis (%d chars): %s", len(text), e.errors()[:1])
        raise AnalysisFailed(f"Could not read the analysis: {_first_error(e)}")

    logger.info("Analysis complete: grade=%s red_flags=%d", report.grade, len(report.red_flags))
    return report


def _first_error(e: ValidationError) -> str:
    errors = e.errors()
    if not errors:
        return "invalid response"
    first = errors[0]
    where = ".".join(str(p) for p in first.get("loc", ()))
    return f"{where}: {first['msg']}" if where else first["msg"]


def build_concerns(report: Report, include_attention: bool = False, include_missing: bool = False) -> List[str]:
    """Concern list for the landlord email: every red flag, plus optional extras."""
    points = []
    for f in report.red_flags:
        points.append(f"RED FLAG: {f.title} — {f.detail}" + (f" Requested change: {f.fix}" if f.fix else ""))

    if include_attention:
        for a in report.attention:
            points.append(f"NEEDS CLARIFICATION: {a.title} — {a.detail}" + (f" Question: {a.ask}" if a.ask else ""))

    if include_missing:
        for m in report.missing:
            points.append(f"MISSING CLAUSE: {m.title} — {m.detail}")

    return points


def build_email_request(concerns: List[str]) -> Dict[str, Any]:
    return {
        "model": settings.MODEL_NAME,
        "max_tokens": settings.EMAIL_MAX_TOKENS,
        "system": EMAIL_PROMPT,
        "messages": [{"role": "user", "content": email_request_text(concerns)}],
    }


async def draft_email(
    client: ModelClient,
    report: Report,
    include_attention: bool = False,
    include_missing: bool = False,
) -> str:
    """Ask the model for a ready-to-send landlord email.

    Any failure, including a reply with no text, yields ``EMAIL_FAILURE`` in
    place of the email text.
    """
    concerns = build_concerns(report, include_attention, include_missing)
    try:
        message = await client.create_message(build_email_request(concerns))
        text = response_text(message).strip()
    except ModelError as e:
        logger.warning("Email draft failed: %s", e)
        return EMAIL_FAILURE
    except Exception:
        logger.exception("Email draft crashed")
        return EMAIL_FAILURE

    if not text:
        logger.warning("Model returned no email text")
        return EMAIL_FAILURE
    return text
