from __future__ import annotations

import logging
from typing import Any, Mapping

from pydantic import ValidationError as PydanticValidationError

from resume_analyzer.ai.types import GenerationClient
from resume_analyzer.core.errors import MissingFieldsError
from resume_analyzer.core.security import IdentityProvider, resolve_user_id
from resume_analyzer.schemas.analysis import AnalysisResult, AnalyzeRequest
from resume_analyzer.services.analysis_prompt import build_analysis_messages
from resume_analyzer.services.response_validator import parse_analysis
from resume_analyzer.storage.records_store import RecordStore

logger = logging.getLogger(__name__)


def parse_analyze_request(payload: Mapping[str, Any] | None) -> tuple[str, str]:
    if not isinstance(payload, Mapping):
        raise MissingFieldsError()
    try:
        request = AnalyzeRequest.model_validate(dict(payload))
    except PydanticValidationError as exc:
        raise MissingFieldsError() from exc
    resume_text = request.resume_text or ""
    resume_id = (request.resume_id or "").strip()
    if not resume_text.strip() or not resume_id:
        raise MissingFieldsError()
    return resume_text, resume_id


class AnalysisOrchestrator:
    """Server-side entry point for one analysis request.

    Holds only its collaborators, never per-request state, so one instance can
    serve concurrent requests. Each stage raises a single classified
    ResumeAnalyzerError and nothing is written unless every earlier stage
    succeeded.
    """

    def __init__(self, *, identity: IdentityProvider, generation_client: GenerationClient, store: RecordStore):
        self._identity = identity
        self._generation_client = generation_client
        self._store = store

    def handle(self, authorization: str | None, payload: Mapping[str, Any] | None) -> AnalysisResult:
        user_id = resolve_user_id(authorization, self._identity)
        resume_text, resume_id = parse_analyze_request(payload)

        logger.info("analysis_started user_id=%s resume_id=%s text_chars=%s", user_id, resume_id, len(resume_text))
        raw_text = self._generation_client.complete(build_analysis_messages(resume_text))
        logger.info("analysis_response_received preview=%s", raw_text[:200].replace("\n", " "))

        draft = parse_analysis(raw_text)
        result = self._store.insert_analysis(resume_id=resume_id, user_id=user_id, draft=draft)
        logger.info("analysis_saved analysis_id=%s resume_id=%s ats_score=%s", result.id, resume_id, result.ats_score)
        return result
