from fastapi import APIRouter

from resume_analyzer.core.config import settings

router = APIRouter()


@router.get("/health", summary="Health Check", description="Check the health status of the application.")
async def health_check():
    return {"status": "healthy", "model": settings.ai_model}
