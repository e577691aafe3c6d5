from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Literal, Protocol

import httpx

from resume_analyzer.core.errors import (
    AuthError,
    GenerationServiceError,
    MissingFieldsError,
    QuotaExceeded,
    RateLimited,
    ResumeAnalyzerError,
    UploadRejected,
)
from resume_analyzer.schemas.analysis import ResumeRecord
from resume_analyzer.schemas.upload import UploadedFile
from resume_analyzer.services.input_validator import Rejected, validate_upload
from resume_analyzer.services.orchestrator import AnalysisOrchestrator
from resume_analyzer.services.text_extractor import TextExtractor
from resume_analyzer.storage.blob_store import BlobStore, build_storage_key

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Failed to upload and analyze resume."


class Phase(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    UPLOADING_BLOB = "uploading_blob"
    PERSISTING_METADATA = "persisting_metadata"
    EXTRACTING = "extracting"
    INVOKING = "invoking"
    COMPLETE = "complete"
    FAILED = "failed"


PHASE_ORDER = (
    Phase.IDLE,
    Phase.VALIDATING,
    Phase.UPLOADING_BLOB,
    Phase.PERSISTING_METADATA,
    Phase.EXTRACTING,
    Phase.INVOKING,
    Phase.COMPLETE,
)

PHASE_PROGRESS = {
    Phase.IDLE: 0,
    Phase.VALIDATING: 10,
    Phase.UPLOADING_BLOB: 20,
    Phase.PERSISTING_METADATA: 40,
    Phase.EXTRACTING: 60,
    Phase.INVOKING: 80,
    Phase.COMPLETE: 100,
}


class InvalidTransition(RuntimeError):
    pass


@dataclass(frozen=True)
class UploadOutcome:
    success: bool
    analysis_id: str | None = None
    failed_phase: Phase | None = None
    title: str | None = None
    reason: str | None = None


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    variant: Literal["default", "destructive"] = "default"


class UploadSession:
    """Transient state of one upload: phase, monotone progress and outcome."""

    def __init__(self, file_name: str):
        self.file_name = file_name
        self.phase = Phase.IDLE
        self.progress = 0
        self.outcome: UploadOutcome | None = None

    @property
    def is_terminal(self) -> bool:
        return self.phase in (Phase.COMPLETE, Phase.FAILED)

    @property
    def is_uploading(self) -> bool:
        return not self.is_terminal and self.phase is not Phase.IDLE

    def advance(self, phase: Phase) -> None:
        if phase in (Phase.IDLE, Phase.FAILED):
            raise InvalidTransition(f"Cannot advance into {phase.value}")
        if self.is_terminal:
            raise InvalidTransition(f"Session already {self.phase.value}")
        expected = PHASE_ORDER[PHASE_ORDER.index(self.phase) + 1]
        if phase is not expected:
            raise InvalidTransition(f"Cannot move from {self.phase.value} to {phase.value}")
        self.phase = phase
        self.progress = max(self.progress, PHASE_PROGRESS[phase])

    def complete(self, analysis_id: str) -> None:
        self.advance(Phase.COMPLETE)
        self.outcome = UploadOutcome(success=True, analysis_id=analysis_id)

    def fail(self, title: str, reason: str) -> None:
        if self.is_terminal:
            raise InvalidTransition(f"Session already {self.phase.value}")
        self.outcome = UploadOutcome(success=False, failed_phase=self.phase, title=title, reason=reason)
        self.phase = Phase.FAILED
        # display reset only, the failed phase is kept on the outcome
        self.progress = 0


@dataclass(frozen=True)
class UploadContext:
    user_id: str | None


class MetadataStore(Protocol):
    def create_resume(
        self,
        *,
        user_id: str,
        file_name: str,
        file_path: str,
        file_size: int,
        file_type: str,
    ) -> ResumeRecord: ...


class AnalysisInvoker(Protocol):
    def invoke(self, *, resume_text: str, resume_id: str) -> str: ...


class InProcessAnalysisInvoker:
    def __init__(self, orchestrator: AnalysisOrchestrator, authorization: str | None):
        self._orchestrator = orchestrator
        self._authorization = authorization

    def invoke(self, *, resume_text: str, resume_id: str) -> str:
        result = self._orchestrator.handle(
            self._authorization,
            {"resumeText": resume_text, "resumeId": resume_id},
        )
        return result.id


_STATUS_ERRORS: dict[int, type[ResumeAnalyzerError]] = {
    400: MissingFieldsError,
    401: AuthError,
    402: QuotaExceeded,
    429: RateLimited,
}


class HttpAnalysisInvoker:
    """Calls a running analysis server over HTTP."""

    def __init__(self, base_url: str, auth_token: str, *, timeout_s: float = 120.0, transport: httpx.BaseTransport | None = None):
        self._url = f"{base_url.rstrip('/')}/v1/analyze-resume"
        self._auth_token = auth_token
        self._timeout_s = timeout_s
        self._transport = transport

    def invoke(self, *, resume_text: str, resume_id: str) -> str:
        try:
            with httpx.Client(timeout=self._timeout_s, transport=self._transport) as client:
                response = client.post(
                    self._url,
                    json={"resumeText": resume_text, "resumeId": resume_id},
                    headers={"Authorization": f"Bearer {self._auth_token}"},
                )
        except httpx.HTTPError as exc:
            raise GenerationServiceError(f"Analysis request failed: {exc}") from exc

        if response.is_success:
            return str(response.json()["id"])

        try:
            message = response.json().get("error")
        except ValueError:
            message = None
        error_cls = _STATUS_ERRORS.get(response.status_code, ResumeAnalyzerError)
        raise error_cls(message or f"Analysis request failed with status {response.status_code}")


ProgressCallback = Callable[[UploadSession], None]
NotifyCallback = Callable[[Notification], None]


def _now_ms() -> int:
    return int(time.time() * 1000)


class UploadStager:
    """Drives one file through validate, store, record, extract and analyze.

    Steps run strictly in order because each one needs the previous result
    (the resume id must exist before analysis). Blocking collaborator calls
    run in worker threads, one await per call. A submission while another is
    in flight is ignored.
    """

    def __init__(
        self,
        *,
        context: UploadContext,
        blob_store: BlobStore,
        metadata_store: MetadataStore,
        extractor: TextExtractor,
        invoker: AnalysisInvoker,
        on_progress: ProgressCallback | None = None,
        on_notify: NotifyCallback | None = None,
        clock_ms: Callable[[], int] = _now_ms,
    ):
        self._context = context
        self._blob_store = blob_store
        self._metadata_store = metadata_store
        self._extractor = extractor
        self._invoker = invoker
        self._on_progress = on_progress
        self._on_notify = on_notify
        self._clock_ms = clock_ms
        self._session: UploadSession | None = None

    @property
    def session(self) -> UploadSession | None:
        return self._session

    @property
    def is_uploading(self) -> bool:
        return self._session is not None and self._session.is_uploading

    async def submit(self, file: UploadedFile) -> UploadSession | None:
        if self.is_uploading:
            logger.info("upload_ignored_in_flight file=%s", file.file_name)
            return None

        session = UploadSession(file.file_name)
        self._session = session
        try:
            analysis_id = await self._run(session, file)
        except UploadRejected as exc:
            self._fail(session, exc.title, str(exc))
            return session
        except ResumeAnalyzerError as exc:
            self._fail(session, "Upload failed", str(exc) or GENERIC_FAILURE)
            return session
        except Exception as exc:  # noqa: BLE001 - every terminal error becomes one notification
            logger.exception("upload_failed_unexpectedly file=%s", file.file_name)
            self._fail(session, "Upload failed", str(exc) or GENERIC_FAILURE)
            return session

        session.complete(analysis_id)
        self._emit_progress(session)
        logger.info("upload_complete file=%s analysis_id=%s", file.file_name, analysis_id)
        self._notify(Notification(title="Success!", description="Your resume has been analyzed successfully."))
        return session

    async def _run(self, session: UploadSession, file: UploadedFile) -> str:
        self._advance(session, Phase.VALIDATING)
        verdict = validate_upload(file.mime_type, file.byte_size)
        if isinstance(verdict, Rejected):
            raise UploadRejected(verdict.reason, constraint=verdict.constraint, title=verdict.title)
        user_id = self._context.user_id
        if not user_id:
            raise AuthError("Please sign in to upload resumes")

        self._advance(session, Phase.UPLOADING_BLOB)
        storage_key = build_storage_key(user_id, file.file_name, self._clock_ms())
        await asyncio.to_thread(self._blob_store.put, storage_key, file.content, content_type=file.mime_type)

        self._advance(session, Phase.PERSISTING_METADATA)
        record = await asyncio.to_thread(
            self._metadata_store.create_resume,
            user_id=user_id,
            file_name=file.file_name,
            file_path=storage_key,
            file_size=file.byte_size,
            file_type=file.mime_type,
        )

        self._advance(session, Phase.EXTRACTING)
        resume_text = await asyncio.to_thread(self._extractor.extract, file)

        self._advance(session, Phase.INVOKING)
        logger.info("upload_invoking_analysis file=%s resume_id=%s", file.file_name, record.id)
        return await asyncio.to_thread(self._invoker.invoke, resume_text=resume_text, resume_id=record.id)

    def _advance(self, session: UploadSession, phase: Phase) -> None:
        session.advance(phase)
        self._emit_progress(session)

    def _fail(self, session: UploadSession, title: str, reason: str) -> None:
        session.fail(title, reason)
        logger.warning(
            "upload_failed file=%s phase=%s reason=%s",
            session.file_name,
            session.outcome.failed_phase.value if session.outcome and session.outcome.failed_phase else None,
            reason,
        )
        self._emit_progress(session)
        self._notify(Notification(title=title, description=reason, variant="destructive"))

    def _emit_progress(self, session: UploadSession) -> None:
        if self._on_progress is not None:
            self._on_progress(session)

    def _notify(self, notification: Notification) -> None:
        if self._on_notify is not None:
            self._on_notify(notification)
