from __future__ import annotations

import json
import logging
import math
import re
from typing import Any

from resume_analyzer.core.errors import MalformedResponse, SchemaViolation
from resume_analyzer.schemas.analysis import AnalysisDraft, SkillSets

logger = logging.getLogger(__name__)

SKILL_CATEGORIES = ("technical", "soft", "certifications")

_FENCE_OPEN_RE = re.compile(r"^\s*```[A-Za-z0-9_+-]*[ \t]*\r?\n?")
_FENCE_CLOSE_RE = re.compile(r"\r?\n?```\s*$")


def strip_code_fence(raw_text: str) -> str:
    text = raw_text.strip()
    text = _FENCE_OPEN_RE.sub("", text, count=1)
    text = _FENCE_CLOSE_RE.sub("", text, count=1)
    return text.strip()


def _string_list(value: Any, field: str, *, required: bool) -> list[str]:
    if value is None and not required:
        return []
    if not isinstance(value, list):
        raise SchemaViolation(field)
    items: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise SchemaViolation(field, "must contain only strings")
        cleaned = item.strip()
        if cleaned:
            items.append(cleaned)
    if required and not items:
        raise SchemaViolation(field, "must not be empty")
    return items


def _distinct(items: list[str]) -> list[str]:
    seen: set[str] = set()
    unique: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            unique.append(item)
    return unique


def _skills(value: Any) -> SkillSets:
    if value is None:
        return SkillSets()
    if not isinstance(value, dict):
        raise SchemaViolation("skills")
    sets = {
        category: _distinct(_string_list(value.get(category), f"skills.{category}", required=False))
        for category in SKILL_CATEGORIES
    }
    return SkillSets(**sets)


def clamp_score(value: Any) -> int:
    """Round half up and clamp into [0, 100]. Rejects non-numeric values."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SchemaViolation("atsScore")
    if isinstance(value, float) and not math.isfinite(value):
        raise SchemaViolation("atsScore", "must be a finite number")
    rounded = value if isinstance(value, int) else math.floor(value + 0.5)
    return max(0, min(100, int(rounded)))


def parse_analysis(raw_text: str) -> AnalysisDraft:
    """Parse free-form model output into a validated AnalysisDraft.

    Fails with MalformedResponse when the text is not a JSON object and with
    SchemaViolation naming the first missing or mistyped field. Missing skill
    arrays become empty sets; the summary, strengths and improvements are
    required. The ATS score is clamped rather than rejected.
    """
    cleaned = strip_code_fence(raw_text or "")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.error("analysis_parse_failed raw_start=%s", (raw_text or "")[:200].replace("\n", " "))
        raise MalformedResponse() from exc
    if not isinstance(data, dict):
        raise MalformedResponse()

    skills = _skills(data.get("skills"))

    summary = data.get("experienceSummary")
    if not isinstance(summary, str):
        raise SchemaViolation("experienceSummary")
    if not summary.strip():
        raise SchemaViolation("experienceSummary", "must not be empty")

    strengths = _string_list(data.get("strengths"), "strengths", required=True)
    improvements = _string_list(data.get("improvements"), "improvements", required=True)

    if "atsScore" not in data:
        raise SchemaViolation("atsScore")
    ats_score = clamp_score(data["atsScore"])

    return AnalysisDraft(
        skills=skills,
        experience_summary=summary.strip(),
        strengths=strengths,
        improvements=improvements,
        ats_score=ats_score,
    )
