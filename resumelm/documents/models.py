"""Data models for profiles, resumes and jobs.

Contains Pydantic models for:
- Record types: WorkExperience, Education, Project, SkillCategory
- Profile: the user's canonical career record
- Resume: base or tailored resume derived from a profile
- JobListing / Job: structured job postings
- ProfileData / ResumeDraft: AI extraction payloads

The record validators accept the loose shapes completion models tend to
return (null lists, a single string where a list is expected, ``skills``
instead of ``items``) so that every list field is present after validation.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, ClassVar

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from resumelm.utils.text import parse_gpa

IDENTITY_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone_number",
    "location",
    "website",
    "linkedin_url",
    "github_url",
)

SECTION_FIELDS = ("work_experience", "education", "skills", "projects")


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _as_string_list(value: Any) -> list[str]:
    items = []
    for item in _as_list(value):
        if item is None:
            continue
        items.append(item if isinstance(item, str) else str(item))
    return items


def _as_string(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


class WorkExperience(BaseModel):
    """A single role in the user's work history."""

    company: str = ""
    position: str = ""
    location: str = ""
    date: str = Field(default="", description="Free-text range, 'Present' if ongoing")
    description: list[str] = Field(default_factory=list, description="Bullet points")
    technologies: list[str] = Field(default_factory=list)

    @field_validator("company", "position", "location", "date", mode="before")
    @classmethod
    def coerce_strings(cls, v: Any) -> str:
        return _as_string(v)

    @field_validator("description", "technologies", mode="before")
    @classmethod
    def coerce_lists(cls, v: Any) -> list[str]:
        return _as_string_list(v)


class Education(BaseModel):
    """A school entry. ``gpa`` is absent unless it parses into 0.0-4.0."""

    school: str = ""
    degree: str = ""
    field: str = ""
    location: str = ""
    date: str = ""
    gpa: float | None = None
    achievements: list[str] = Field(default_factory=list)

    @field_validator("school", "degree", "field", "location", "date", mode="before")
    @classmethod
    def coerce_strings(cls, v: Any) -> str:
        return _as_string(v)

    @field_validator("gpa", mode="before")
    @classmethod
    def coerce_gpa(cls, v: Any) -> float | None:
        return parse_gpa(v)

    @field_validator("achievements", mode="before")
    @classmethod
    def coerce_achievements(cls, v: Any) -> list[str]:
        return _as_string_list(v)


class Project(BaseModel):
    """A side or professional project."""

    name: str = ""
    description: list[str] = Field(default_factory=list)
    technologies: list[str] = Field(default_factory=list)
    url: str | None = None
    github_url: str | None = None
    date: str = ""

    @field_validator("name", "date", mode="before")
    @classmethod
    def coerce_strings(cls, v: Any) -> str:
        return _as_string(v)

    @field_validator("url", "github_url", mode="before")
    @classmethod
    def blank_url_to_none(cls, v: Any) -> str | None:
        if v is None:
            return None
        text = _as_string(v).strip()
        return text or None

    @field_validator("description", "technologies", mode="before")
    @classmethod
    def coerce_lists(cls, v: Any) -> list[str]:
        return _as_string_list(v)


class SkillCategory(BaseModel):
    """A named group of skills. Extraction output may use ``skills`` for items."""

    category: str = ""
    items: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("items", "skills")
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, v: Any) -> str:
        return _as_string(v)

    @field_validator("items", mode="before")
    @classmethod
    def coerce_items(cls, v: Any) -> list[str]:
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return _as_string_list(v)


class ContactInfo(BaseModel):
    """Identity fields shared by profiles and resumes."""

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    location: str | None = None
    website: str | None = None
    linkedin_url: str | None = None
    github_url: str | None = None


class ResumeSections(BaseModel):
    """The list-of-record content shared by profiles and resumes."""

    work_experience: list[WorkExperience] = Field(default_factory=list)
    education: list[Education] = Field(default_factory=list)
    skills: list[SkillCategory] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)

    @field_validator(*SECTION_FIELDS, mode="before")
    @classmethod
    def absent_list_to_empty(cls, v: Any) -> list:
        return _as_list(v)


class ProfileData(ContactInfo, ResumeSections):
    """Profile-shaped extraction payload (no ownership metadata)."""


class ResumeDraft(ContactInfo, ResumeSections):
    """Resume-shaped extraction payload returned by import and tailoring calls."""

    target_role: str | None = None


class Profile(ContactInfo, ResumeSections):
    """The user's canonical career record."""

    id: str = ""
    user_id: str = ""
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Profile:
        """Deserialize from dictionary."""
        return cls.model_validate(data)


class CoverLetter(BaseModel):
    """Narrative cover letter text attached to a tailored resume."""

    content: str = ""


class Resume(ContactInfo, ResumeSections):
    """A base resume (no job) or a tailored resume (linked to one job).

    ``job_id`` is fixed once set; use :meth:`update_field` for edits so the
    invariant is enforced.
    """

    IMMUTABLE_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"id", "user_id", "is_base_resume", "created_at"}
    )

    id: str = ""
    user_id: str = ""
    name: str = ""
    target_role: str = ""
    is_base_resume: bool = True
    job_id: str | None = None
    has_cover_letter: bool = False
    cover_letter: CoverLetter | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def base_resume_has_no_job(self) -> Resume:
        if self.is_base_resume and self.job_id is not None:
            raise ValueError("a base resume cannot reference a job")
        return self

    def update_field(self, field: str, value: Any) -> Resume:
        """Return a copy with one top-level field replaced.

        Raises:
            ValueError: For unknown or immutable fields, or an attempt to
                change an already-set job reference.
        """
        if field not in type(self).model_fields:
            raise ValueError(f"Unknown resume field: {field}")
        if field in self.IMMUTABLE_FIELDS:
            raise ValueError(f"Resume field '{field}' cannot be changed")
        if field == "job_id" and self.job_id is not None and value != self.job_id:
            raise ValueError("A tailored resume's job reference cannot be changed")

        data = self.model_dump()
        data[field] = value.model_dump() if isinstance(value, BaseModel) else value
        if field == "cover_letter":
            data["has_cover_letter"] = value is not None
        data["updated_at"] = _utcnow()
        return Resume.model_validate(data)

    def sections(self) -> ResumeSections:
        """Return just the list-of-record content."""
        return ResumeSections.model_validate(self.model_dump(include=set(SECTION_FIELDS)))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Resume:
        """Deserialize from dictionary."""
        return cls.model_validate(data)


class JobListing(BaseModel):
    """Structured job posting produced by extraction.

    Only the title and company are relied upon by the pipelines; everything
    else the model extracts is kept as-is (extra keys are allowed).
    """

    model_config = ConfigDict(extra="allow")

    position_title: str = Field(default="", description="Job title")
    company_name: str = Field(default="", description="Hiring company")
    job_url: str | None = None
    description: str | None = None
    location: str | None = None
    salary_range: str | None = None
    keywords: list[str] = Field(default_factory=list)
    work_location: str | None = Field(
        default=None, description="remote, in_person or hybrid"
    )
    employment_type: str | None = Field(
        default=None, description="full_time, part_time, co_op, internship, contract"
    )

    @field_validator("position_title", "company_name", mode="before")
    @classmethod
    def coerce_strings(cls, v: Any) -> str:
        return _as_string(v)

    @field_validator("keywords", mode="before")
    @classmethod
    def coerce_keywords(cls, v: Any) -> list[str]:
        return _as_string_list(v)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return self.model_dump(mode="json")


class Job(JobListing):
    """A persisted job listing. Read-only once created."""

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str
    user_id: str = ""
    created_at: datetime = Field(default_factory=_utcnow)
