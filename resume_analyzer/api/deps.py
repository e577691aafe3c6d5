from __future__ import annotations

from fastapi import Depends

from resume_analyzer.ai.factory import get_generation_client
from resume_analyzer.ai.types import GenerationClient
from resume_analyzer.core.security import IdentityProvider, SessionTokenIdentityProvider
from resume_analyzer.services.orchestrator import AnalysisOrchestrator
from resume_analyzer.storage.records_store import RecordStore, get_record_store


def get_store() -> RecordStore:
    return get_record_store()


def get_identity(store: RecordStore = Depends(get_store)) -> IdentityProvider:
    return SessionTokenIdentityProvider(store)


def get_generation() -> GenerationClient:
    return get_generation_client()


def get_orchestrator(
    store: RecordStore = Depends(get_store),
    identity: IdentityProvider = Depends(get_identity),
    generation_client: GenerationClient = Depends(get_generation),
) -> AnalysisOrchestrator:
    return AnalysisOrchestrator(identity=identity, generation_client=generation_client, store=store)
