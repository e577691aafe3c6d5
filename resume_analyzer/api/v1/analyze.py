import asyncio
import json
from typing import Any

from fastapi import APIRouter, Depends, Header, Request, Response

from resume_analyzer.api.deps import get_orchestrator
from resume_analyzer.core.cors import cors_headers
from resume_analyzer.core.rate_limit import rate_limit
from resume_analyzer.schemas.analysis import AnalysisResult, ErrorResponse
from resume_analyzer.services.orchestrator import AnalysisOrchestrator

router = APIRouter()


async def _read_json_body(request: Request) -> Any:
    body = await request.body()
    if not body:
        return None
    try:
        return json.loads(body)
    except ValueError:
        return None


@router.post(
    "/analyze-resume",
    response_model=AnalysisResult,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        402: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
@rate_limit()
async def analyze_resume(
    request: Request,
    authorization: str | None = Header(default=None),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    payload = await _read_json_body(request)
    return await asyncio.to_thread(orchestrator.handle, authorization, payload)


@router.options("/analyze-resume", include_in_schema=False)
async def analyze_resume_preflight(request: Request):
    return Response(status_code=200, headers=cors_headers(request.headers.get("origin")))
