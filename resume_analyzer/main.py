import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi import _rate_limit_exceeded_handler
import sentry_sdk

from resume_analyzer.api.v1.health import router as health_router
from resume_analyzer.api.v1.analyze import router as analyze_router
from resume_analyzer.api.v1.analyses import router as analyses_router
from resume_analyzer.core.cors import EmptyPreflightCORSMiddleware, cors_allowed_origins, cors_headers
from resume_analyzer.core.errors import ResumeAnalyzerError
from resume_analyzer.core.rate_limit import limiter
from resume_analyzer.core.config import settings
from dotenv import load_dotenv
from resume_analyzer.core.lifespan import lifespan

load_dotenv()
logging.basicConfig(level=settings.log_level, format="%(message)s")
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn)

logger = logging.getLogger(__name__)

app = FastAPI(title="Resume Analyzer API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    EmptyPreflightCORSMiddleware,
    allow_origins=cors_allowed_origins(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(ResumeAnalyzerError)
async def resume_analyzer_error_handler(request: Request, exc: ResumeAnalyzerError):
    if exc.status_code >= 500:
        logger.error("request_failed path=%s code=%s: %s", request.url.path, exc.code, exc)
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)}, headers=cors_headers(request.headers.get("origin")))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("request_failed_unhandled path=%s", request.url.path)
    return JSONResponse(status_code=500, content={"error": str(exc) or "Unknown error"}, headers=cors_headers(request.headers.get("origin")))


app.include_router(health_router, prefix="/v1", tags=["Health"])
app.include_router(analyze_router, prefix="/v1", tags=["Analysis"])
app.include_router(analyses_router, prefix="/v1", tags=["Analysis"])
