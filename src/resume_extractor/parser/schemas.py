"""Pydantic v2 models for structured resume data.

These schemas define the contract between a structured parser (typically an
LLM prompted with extracted resume text) and downstream consumers that
populate profile forms.  Field aliases match the camelCase JSON the parser
emits; models accept either spelling.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _ResumeModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ContactInfo(_ResumeModel):
    """Candidate identity and contact details."""

    first_name: str | None = None
    last_name: str | None = None
    headline: str | None = None  # professional title
    email: str | None = None
    phone: str | None = None
    address: str | None = None


class Experience(_ResumeModel):
    """A single job.  Dates are ``YYYY-MM`` strings or None."""

    company: str | None = None
    job_title: str | None = None
    location: str | None = None
    description: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    current_job: bool | None = None


class Education(_ResumeModel):
    institution: str | None = None
    degree: str | None = None
    field_of_study: str | None = None
    location: str | None = None
    description: str | None = None
    start_date: str | None = None
    end_date: str | None = None


class SkillGroup(_ResumeModel):
    """Skills grouped by category, e.g. "Programming Languages"."""

    category: str | None = None
    skills: list[str] = Field(default_factory=list)

    @field_validator("skills", mode="before")
    @classmethod
    def _none_as_empty(cls, v):
        return [] if v is None else v


class Project(_ResumeModel):
    title: str | None = None
    description: str | None = None
    technologies: list[str] = Field(default_factory=list)
    url: str | None = None
    start_date: str | None = None
    end_date: str | None = None

    @field_validator("technologies", mode="before")
    @classmethod
    def _none_as_empty(cls, v):
        return [] if v is None else v


class Certification(_ResumeModel):
    title: str | None = None
    organization: str | None = None
    issue_date: str | None = None
    expiration_date: str | None = None
    credential_url: str | None = None


class ParsedResumeData(_ResumeModel):
    """Top-level structured resume.

    Every section is optional; a parser fills what the text supports.
    """

    contact_info: ContactInfo | None = None
    summary: str | None = None
    experience: list[Experience] = Field(default_factory=list)
    education: list[Education] = Field(default_factory=list)
    technical_skills: list[SkillGroup] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)
    certifications: list[Certification] = Field(default_factory=list)

    @field_validator(
        "experience",
        "education",
        "technical_skills",
        "projects",
        "certifications",
        mode="before",
    )
    @classmethod
    def _none_as_empty(cls, v):
        """Models often answer null for a missing section."""
        return [] if v is None else v
