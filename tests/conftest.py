"""Pytest configuration and shared fixtures."""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest

from resumelm.config.settings import Settings, reset_settings
from resumelm.documents.models import (
    Education,
    Job,
    JobListing,
    Profile,
    Resume,
    SkillCategory,
    WorkExperience,
)
from resumelm.utils.logging import reset_logging


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Keep RESUMELM_* variables from the environment out of every test."""
    for key in list(os.environ):
        if key.upper().startswith("RESUMELM_"):
            monkeypatch.delenv(key, raising=False)
    reset_settings()
    reset_logging()
    yield
    reset_settings()
    reset_logging()


@pytest.fixture
def settings() -> Settings:
    """Default settings without a .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def ai_config() -> dict:
    """Client configuration with an Anthropic key."""
    return {
        "model": "claude-sonnet-4-20250514",
        "apiKeys": [{"service": "anthropic", "key": "sk-ant-test-key-123456"}],
    }


@pytest.fixture
def experience_a() -> WorkExperience:
    return WorkExperience(
        company="Initech",
        position="Software Engineer",
        date="2019 - 2023",
        description=["Built internal billing APIs"],
        technologies=["Python", "PostgreSQL"],
    )


@pytest.fixture
def experience_b() -> WorkExperience:
    return WorkExperience(
        company="Initech",
        position="Backend Engineer",
        date="2019 - 2023",
        description=["Designed billing services handling 1M requests/day"],
        technologies=["Python", "Kafka"],
    )


@pytest.fixture
def base_resume(experience_a) -> Resume:
    """A base resume with one work experience entry."""
    return Resume(
        id="base_1",
        user_id="local",
        name="Software Engineer",
        target_role="Software Engineer",
        is_base_resume=True,
        first_name="Ada",
        last_name="Lovelace",
        email="ada@example.com",
        work_experience=[experience_a],
        education=[Education(school="State University", degree="BSc", field="CS", gpa=3.9)],
        skills=[SkillCategory(category="Languages", items=["Python"])],
    )


@pytest.fixture
def profile(experience_a) -> Profile:
    return Profile(
        id="profile_1",
        user_id="local",
        first_name="Ada",
        last_name="Lovelace",
        email="ada@example.com",
        work_experience=[experience_a],
        skills=[SkillCategory(category="Languages", items=["Python", "Go"])],
    )


@pytest.fixture
def job_listing() -> JobListing:
    return JobListing(
        position_title="Senior Backend Engineer",
        company_name="Acme Corp",
        description="Build and scale backend services.",
        keywords=["Python", "Kafka"],
    )


@pytest.fixture
def mock_store(base_resume, job_listing, profile):
    """In-memory stand-in for the document store with awaitable methods."""
    store = MagicMock()
    store.create_job = AsyncMock(
        return_value=Job(id="job_1", user_id="local", **job_listing.model_dump())
    )
    store.get_job = AsyncMock(return_value=None)
    store.get_resume_by_id = AsyncMock(return_value=base_resume)

    async def _create_tailored_resume(base_resume, job_id, title, company, content):
        return Resume(
            id="resume_1",
            user_id="local",
            name=f"{title} at {company}" if company else title,
            target_role=content.target_role or base_resume.target_role,
            is_base_resume=False,
            job_id=job_id,
            work_experience=content.work_experience,
            education=content.education,
            skills=content.skills,
            projects=content.projects,
        )

    store.create_tailored_resume = AsyncMock(side_effect=_create_tailored_resume)
    store.create_base_resume = AsyncMock()
    store.update_resume = AsyncMock(side_effect=lambda resume: resume)
    store.delete_resume = AsyncMock()
    store.get_profile = AsyncMock(return_value=profile)
    store.update_profile = AsyncMock()
    store.import_resume = AsyncMock()
    return store


WRITE_METHODS = (
    "create_job",
    "create_tailored_resume",
    "create_base_resume",
    "update_resume",
    "update_profile",
    "import_resume",
)


@pytest.fixture
def count_writes():
    """Count awaited write operations on a mock store."""

    def _count(store) -> int:
        return sum(getattr(store, name).await_count for name in WRITE_METHODS)

    return _count
