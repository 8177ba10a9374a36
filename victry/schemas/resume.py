"""Pydantic schemas for resumes and their nested sections.

JSON uses camelCase (``targetJobTitle``, ``personalInfo``); Python code uses
snake_case. Both spellings are accepted on input.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PersonalInfo(CamelModel):
    full_name: str = Field(..., min_length=1, description="Candidate full name")
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    linked_in: str | None = None
    github: str | None = None
    website: str | None = None


class WorkExperience(CamelModel):
    id: str | None = None
    position: str = Field(..., min_length=1)
    company: str = Field(..., min_length=1)
    location: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    is_current: bool = False
    highlights: list[str] = Field(default_factory=list)
    description: str | None = None


class Education(CamelModel):
    id: str | None = None
    institution: str = Field(..., min_length=1)
    degree: str = Field(..., min_length=1)
    field: str = Field(..., min_length=1)
    location: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    current: bool = False
    gpa: str | None = None
    achievements: list[str] = Field(default_factory=list)
    description: str | None = None


class Skill(CamelModel):
    id: str | None = None
    name: str = Field(..., min_length=1)
    level: Literal["beginner", "intermediate", "advanced", "expert"] | None = None
    category: str | None = None
    years_of_experience: float | None = Field(None, ge=0)
    is_key_skill: bool = False


class Project(CamelModel):
    id: str | None = None
    name: str = Field(..., min_length=1)
    description: str | None = None
    url: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    highlights: list[str] = Field(default_factory=list)
    technologies: list[str] = Field(default_factory=list)
    role: str | None = None


class Certification(CamelModel):
    id: str | None = None
    name: str = Field(..., min_length=1)
    issuer: str | None = None
    date: str | None = None
    expires: str | None = None
    url: str | None = None
    credential_id: str | None = None


class Language(CamelModel):
    id: str | None = None
    name: str = Field(..., min_length=1)
    proficiency: Literal[
        "elementary",
        "limited_working",
        "professional_working",
        "full_professional",
        "native",
    ] | None = None


class SocialLink(CamelModel):
    id: str | None = None
    platform: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)


class CustomSectionItem(CamelModel):
    id: str | None = None
    title: str | None = None
    subtitle: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    description: str | None = None
    highlights: list[str] = Field(default_factory=list)


class CustomSection(CamelModel):
    id: str | None = None
    title: str = Field(..., min_length=1)
    items: list[CustomSectionItem] = Field(default_factory=list)


class ResumeSections(CamelModel):
    """Optional resume content shared by create, update and read models."""

    professional_summary: str | None = None
    work_experiences: list[WorkExperience] = Field(default_factory=list)
    education: list[Education] = Field(default_factory=list)
    skills: list[Skill] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)
    certifications: list[Certification] = Field(default_factory=list)
    languages: list[Language] = Field(default_factory=list)
    interests: list[str] = Field(default_factory=list)
    social_links: list[SocialLink] = Field(default_factory=list)
    custom_sections: list[CustomSection] = Field(default_factory=list)
    metadata: dict[str, Any] | None = None


class ResumeCreate(ResumeSections):
    title: str = Field(..., min_length=1, description="Resume title")
    target_job_title: str = Field(..., min_length=1, description="Role this resume targets")
    template_id: str = Field(..., min_length=1, description="Rendering template identifier")
    personal_info: PersonalInfo
    is_base_resume: bool = True
    job_description_id: str | None = None


class ResumeUpdate(CamelModel):
    """Partial update; only fields present in the request are applied."""

    title: str | None = Field(None, min_length=1)
    target_job_title: str | None = Field(None, min_length=1)
    template_id: str | None = Field(None, min_length=1)
    personal_info: PersonalInfo | None = None
    professional_summary: str | None = None
    work_experiences: list[WorkExperience] | None = None
    education: list[Education] | None = None
    skills: list[Skill] | None = None
    projects: list[Project] | None = None
    certifications: list[Certification] | None = None
    languages: list[Language] | None = None
    interests: list[str] | None = None
    social_links: list[SocialLink] | None = None
    custom_sections: list[CustomSection] | None = None
    metadata: dict[str, Any] | None = None
    ats_score: int | None = Field(None, ge=0, le=100)


class Resume(ResumeCreate):
    id: str
    user_id: str
    created_at: datetime
    updated_at: datetime
    version: int = 1
    ats_score: int | None = Field(None, ge=0, le=100)


SortField = Literal["created_at", "updated_at", "title", "target_job_title"]
SortOrder = Literal["asc", "desc"]


class ResumeQuery(BaseModel):
    """Listing options: pagination, title search and sorting."""

    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=50)
    search: str | None = None
    sort_by: SortField = "updated_at"
    sort_order: SortOrder = "desc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class ResumePage(BaseModel):
    items: list[Resume]
    total: int
