from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SkillSets(BaseModel):
    technical: list[str] = Field(default_factory=list)
    soft: list[str] = Field(default_factory=list)
    certifications: list[str] = Field(default_factory=list)


class AnalysisDraft(BaseModel):
    """Validated model output, not yet bound to a resume or owner."""

    skills: SkillSets = Field(default_factory=SkillSets)
    experience_summary: str = Field(min_length=1)
    strengths: list[str] = Field(min_length=1)
    improvements: list[str] = Field(min_length=1)
    ats_score: int = Field(ge=0, le=100)


class AnalysisResult(AnalysisDraft):
    id: str
    resume_id: str
    user_id: str
    created_at: datetime


class ResumeRecord(BaseModel):
    id: str
    user_id: str
    file_name: str
    file_path: str
    file_size: int = Field(ge=0)
    file_type: str
    created_at: datetime


class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    resume_text: str | None = Field(default=None, alias="resumeText")
    resume_id: str | None = Field(default=None, alias="resumeId")


class ErrorResponse(BaseModel):
    error: str
