# report.py
import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

NOT_FOUND = "Not found"
NO_FEES = "None"

_FENCE_RE = re.compile(r"```json|```")


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    @field_validator("*", mode="before")
    @classmethod
    def _null_to_default(cls, v, info):
        # JSON null means "omitted" for every field that has a default
        field = cls.model_fields[info.field_name]
        if v is None and not field.is_required():
            return field.get_default(call_default_factory=True)
        return v


class GreenFlag(_Lenient):
    title: str = ""
    detail: str = ""
    section: Optional[str] = None


class RedFlag(_Lenient):
    title: str = ""
    severity: str = "medium"
    detail: str = ""
    fix: str = ""
    section: Optional[str] = None

    @field_validator("severity")
    @classmethod
    def _lower(cls, v: str) -> str:
        return v.strip().lower()


class AttentionItem(_Lenient):
    title: str = ""
    detail: str = ""
    ask: str = ""
    section: Optional[str] = None


class MissingClause(_Lenient):
    title: str = ""
    detail: str = ""


class Money(_Lenient):
    rent: str = NOT_FOUND
    deposit: str = NOT_FOUND
    escalation: str = NOT_FOUND
    fees: List[str] = []

    @property
    def has_fees(self) -> bool:
        return bool(self.fees) and self.fees[0] != NO_FEES


class Dates(_Lenient):
    term: str = NOT_FOUND
    notice: str = NOT_FOUND
    renewal: str = NOT_FOUND


class Report(_Lenient):
    """Structured lease assessment returned by the model.

    Only ``summary`` and ``grade`` are required. The model routinely drops keys,
    sends ``null`` or writes numbers where text is expected, so those collapse
    to empty lists, the "Not found" sentinel, or strings.
    """

    summary: str
    grade: str
    green_flags: List[GreenFlag] = []
    red_flags: List[RedFlag] = []
    attention: List[AttentionItem] = []
    missing: List[MissingClause] = []
    money: Money = Money()
    dates: Dates = Dates()
    priorities: List[str] = []

    @field_validator("grade", mode="before")
    @classmethod
    def _grade_letter(cls, v):
        # "B+" and "b" both grade as B
        if isinstance(v, str) and v.strip():
            return v.strip()[0].upper()
        return v


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` markers the model sometimes wraps around its answer."""
    return _FENCE_RE.sub("", text).strip()


def parse_report(text: str) -> Report:
    """Parse model output into a Report.

    Raises ``pydantic.ValidationError`` (a ``ValueError``) when the text is not
    JSON or does not fit the report shape.
    """
    return Report.model_validate_json(strip_code_fences(text))
