"""
Resume Analyzer Models
=======================
Pydantic models for API contracts and the analysis payload.

Wire names follow the web client (camelCase for analysis and feedback
bodies, snake_case for user rows), so camelCase models declare aliases and
accept either spelling.
"""

from typing import Annotated, Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# Integers stay integers on the wire
Percentage = Union[
    Annotated[int, Field(ge=0, le=100)],
    Annotated[float, Field(ge=0, le=100)],
]


class CamelModel(BaseModel):
    """Base for bodies the client sends in camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True)


# ── Analysis ──────────────────────────────────────────────────────

class AnalyzeRequest(CamelModel):
    # Presence is checked by the handler so a missing field is a 400, not a 422
    job_description: Optional[str] = None
    resume: Optional[str] = None
    resume_id: Optional[str] = None
    job_description_id: Optional[str] = None
    user_id: Optional[str] = None


class AnalysisResult(CamelModel):
    """The seven-field match assessment returned by the model."""
    skills_match_percentage: Percentage
    matched_skills: List[str] = Field(default_factory=list)
    missing_skills: List[str] = Field(default_factory=list)
    improvement_suggestions: List[str] = Field(default_factory=list)
    overall_feedback: str = ""
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

    def skills_summary(self) -> Dict[str, Any]:
        """Shape stored in tailoring_sessions.matched_skills."""
        return {
            "matchedSkills": self.matched_skills,
            "missingSkills": self.missing_skills,
            "skillsMatchPercentage": self.skills_match_percentage,
        }


class AnalysisOutcome(BaseModel):
    """Parsed analysis plus whether the fallback structure was used."""
    result: AnalysisResult
    degraded: bool = False
    raw_text: str = ""


# ── Users & feedback ──────────────────────────────────────────────

class SaveUserRequest(BaseModel):
    id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None


class FeedbackRequest(CamelModel):
    user_id: Optional[str] = None
    message: Optional[str] = None


# ── Resumes & job descriptions ────────────────────────────────────

class ResumeUpdateRequest(BaseModel):
    title: Optional[str] = None
    content_raw: Optional[str] = None


class JobDescriptionRequest(CamelModel):
    user_id: Optional[str] = None
    content: Optional[str] = None
    title: str = "Job Analysis"
    source: str = "manual_paste"


class HealthResponse(BaseModel):
    status: str
    service: str
    timestamp: str
    port: int
    services: Dict[str, bool]
