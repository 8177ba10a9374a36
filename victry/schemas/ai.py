"""Pydantic schemas for AI job description analysis."""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

Importance = Literal["must_have", "preferred", "nice_to_have"]


def _importance(value: Any) -> str:
    lowered = str(value).lower() if value is not None else ""
    return lowered if lowered in ("must_have", "preferred", "nice_to_have") else "nice_to_have"


class JobAnalysisRequest(BaseModel):
    """Job description text sent for analysis."""

    text: str = Field(
        ...,
        min_length=50,
        max_length=30_000,
        description="Job description text (responsibilities, requirements, company info).",
    )
    temperature: float = Field(
        0.3,
        ge=0.0,
        le=1.0,
        description="Sampling temperature forwarded to the model.",
    )


class SkillRequirement(BaseModel):
    skill: str
    importance: Importance = "nice_to_have"

    @field_validator("importance", mode="before")
    @classmethod
    def _normalize_importance(cls, value: Any) -> str:
        return _importance(value)


class ExperienceRequirement(BaseModel):
    description: str
    importance: Importance = "nice_to_have"

    @field_validator("importance", mode="before")
    @classmethod
    def _normalize_importance(cls, value: Any) -> str:
        return _importance(value)


class EducationRequirement(BaseModel):
    type: str
    field: str
    importance: Importance = "nice_to_have"

    @field_validator("importance", mode="before")
    @classmethod
    def _normalize_importance(cls, value: Any) -> str:
        return _importance(value)


class JobKeyword(BaseModel):
    text: str
    frequency: int = Field(1, ge=1)
    context: str | None = None


class JobAnalysis(BaseModel):
    """Structured requirements extracted from a job description.

    Unknown importance values fall back to ``nice_to_have``.
    """

    hard_skills: list[SkillRequirement] = Field(default_factory=list)
    soft_skills: list[SkillRequirement] = Field(default_factory=list)
    experience: list[ExperienceRequirement] = Field(default_factory=list)
    education: list[EducationRequirement] = Field(default_factory=list)
    certifications: list[str] = Field(default_factory=list)
    keywords: list[JobKeyword] = Field(default_factory=list)
    company_culture: list[str] = Field(default_factory=list)
    experience_level: str | None = Field(
        None,
        description="Seniority inferred from the posting (e.g., junior, mid, senior).",
    )
