from __future__ import annotations

from fastapi import APIRouter, Depends, Header

from resume_analyzer.api.deps import get_identity, get_store
from resume_analyzer.core.errors import NotFoundError
from resume_analyzer.core.security import IdentityProvider, resolve_user_id
from resume_analyzer.schemas.analysis import AnalysisResult
from resume_analyzer.storage.records_store import RecordStore

router = APIRouter()


@router.get("/analyses/{analysis_id}", response_model=AnalysisResult)
def get_analysis(
    analysis_id: str,
    authorization: str | None = Header(default=None),
    identity: IdentityProvider = Depends(get_identity),
    store: RecordStore = Depends(get_store),
):
    user_id = resolve_user_id(authorization, identity)
    result = store.get_analysis(analysis_id, user_id=user_id)
    if result is None:
        raise NotFoundError("Analysis not found")
    return result


@router.get("/resumes/{resume_id}/analyses", response_model=list[AnalysisResult])
def list_resume_analyses(
    resume_id: str,
    authorization: str | None = Header(default=None),
    identity: IdentityProvider = Depends(get_identity),
    store: RecordStore = Depends(get_store),
):
    user_id = resolve_user_id(authorization, identity)
    if store.get_resume(resume_id, user_id=user_id) is None:
        raise NotFoundError("Resume not found")
    return store.list_analyses(resume_id, user_id=user_id)
