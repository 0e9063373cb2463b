"""SQLite document store.

This module provides async SQLite storage for one user's profile, resumes
and jobs. Documents are stored as JSON alongside the columns needed for
lookups.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

import aiosqlite

from resumelm.ai.errors import NotFoundError
from resumelm.documents.models import (
    IDENTITY_FIELDS,
    SECTION_FIELDS,
    Job,
    JobListing,
    Profile,
    ProfileData,
    Resume,
    ResumeDraft,
)
from resumelm.reconcile.engine import reconcile
from resumelm.store.protocol import BaseResumeMode

logger = logging.getLogger(__name__)

CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS profiles (
    user_id TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS jobs (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    position_title TEXT NOT NULL,
    company_name TEXT NOT NULL,
    data TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS resumes (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    is_base_resume INTEGER NOT NULL,
    job_id TEXT REFERENCES jobs(id),
    data TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_resumes_user ON resumes(user_id);
CREATE INDEX IF NOT EXISTS idx_jobs_user ON jobs(user_id);
"""

DEFAULT_USER_ID = "local"


def _new_id() -> str:
    return uuid.uuid4().hex


def tailored_resume_name(title: str, company: str) -> str:
    """Name of a tailored resume: "<title> at <company>", or just the title."""
    title = title.strip()
    company = company.strip()
    if title and company:
        return f"{title} at {company}"
    return title or company


class SQLiteDocumentStore:
    """Async SQLite implementation of the DocumentStore protocol.

    Args:
        db_path: Path to the SQLite database file.
        user_id: Owner of every document read or written through this store.
    """

    def __init__(self, db_path: Path | str, user_id: str = DEFAULT_USER_ID):
        self.db_path = Path(db_path)
        self.user_id = user_id
        self._connection: aiosqlite.Connection | None = None

    @asynccontextmanager
    async def _get_connection(self) -> AsyncGenerator[aiosqlite.Connection, None]:
        if self._connection is None:
            self._connection = await aiosqlite.connect(self.db_path)
            self._connection.row_factory = aiosqlite.Row
        yield self._connection

    async def initialize(self) -> None:
        """Initialize the database, creating tables if needed."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        async with self._get_connection() as conn:
            await conn.executescript(CREATE_TABLES_SQL)
            await conn.commit()

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None

    # Jobs

    async def create_job(self, listing: JobListing) -> Job:
        """Persist a structured job listing as a new, immutable job."""
        job = Job.model_validate(
            {**listing.model_dump(), "id": _new_id(), "user_id": self.user_id}
        )
        async with self._get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO jobs (id, user_id, position_title, company_name, data, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    job.id,
                    self.user_id,
                    job.position_title,
                    job.company_name,
                    job.model_dump_json(),
                    job.created_at.isoformat(),
                ),
            )
            await conn.commit()

        logger.info(f"Created job {job.id}: {job.position_title} at {job.company_name}")
        return job

    async def get_job(self, job_id: str) -> Job | None:
        """Get a job by id, or None."""
        async with self._get_connection() as conn:
            cursor = await conn.execute(
                "SELECT data FROM jobs WHERE id = ? AND user_id = ?",
                (job_id, self.user_id),
            )
            row = await cursor.fetchone()

        if row is None:
            return None
        return Job.model_validate_json(row["data"])

    # Resumes

    async def get_resume_by_id(self, resume_id: str) -> Resume | None:
        """Get a resume by id, or None."""
        async with self._get_connection() as conn:
            cursor = await conn.execute(
                "SELECT data FROM resumes WHERE id = ? AND user_id = ?",
                (resume_id, self.user_id),
            )
            row = await cursor.fetchone()

        if row is None:
            return None
        return Resume.model_validate_json(row["data"])

    async def list_resumes(self, base_only: bool = False) -> list[Resume]:
        """List the user's resumes, newest first."""
        query = "SELECT data FROM resumes WHERE user_id = ?"
        if base_only:
            query += " AND is_base_resume = 1"
        query += " ORDER BY created_at DESC"

        async with self._get_connection() as conn:
            cursor = await conn.execute(query, (self.user_id,))
            rows = await cursor.fetchall()

        return [Resume.model_validate_json(row["data"]) for row in rows]

    async def create_tailored_resume(
        self,
        base_resume: Resume,
        job_id: str | None,
        title: str,
        company: str,
        content: ResumeDraft,
    ) -> Resume:
        """Create a tailored resume from a base resume and tailored content.

        Identity fields come from the base resume; list content comes from
        ``content`` verbatim.
        """
        resume = Resume(
            id=_new_id(),
            user_id=self.user_id,
            name=tailored_resume_name(title, company),
            target_role=content.target_role or base_resume.target_role,
            is_base_resume=False,
            job_id=job_id,
            **{name: getattr(base_resume, name) for name in IDENTITY_FIELDS},
            **{name: getattr(content, name) for name in SECTION_FIELDS},
        )
        await self._insert_resume(resume)
        logger.info(f"Created tailored resume {resume.id} (job={job_id})")
        return resume

    async def create_base_resume(
        self, target_role: str, mode: BaseResumeMode, content: ResumeDraft
    ) -> Resume:
        """Create a base resume. ``fresh`` resumes start without list content."""
        sections = {}
        if mode != "fresh":
            sections = {name: getattr(content, name) for name in SECTION_FIELDS}
        resume = Resume(
            id=_new_id(),
            user_id=self.user_id,
            name=target_role,
            target_role=target_role,
            is_base_resume=True,
            **{name: getattr(content, name) for name in IDENTITY_FIELDS},
            **sections,
        )
        await self._insert_resume(resume)
        logger.info(f"Created base resume {resume.id} ({mode})")
        return resume

    async def update_resume(self, resume: Resume) -> Resume:
        """Replace a stored resume.

        Raises:
            NotFoundError: If the resume does not exist.
            ValueError: If the update would change an already-set job reference.
        """
        stored = await self.get_resume_by_id(resume.id)
        if stored is None:
            raise NotFoundError(f"Resume not found: {resume.id}")
        if stored.job_id is not None and resume.job_id != stored.job_id:
            raise ValueError("A tailored resume's job reference cannot be changed")
        if stored.is_base_resume != resume.is_base_resume:
            raise ValueError("A resume cannot switch between base and tailored")

        updated = resume.model_copy(update={"updated_at": datetime.now(UTC)})
        async with self._get_connection() as conn:
            await conn.execute(
                """
                UPDATE resumes
                SET name = ?, job_id = ?, data = ?, updated_at = ?
                WHERE id = ? AND user_id = ?
                """,
                (
                    updated.name,
                    updated.job_id,
                    updated.model_dump_json(),
                    updated.updated_at.isoformat(),
                    updated.id,
                    self.user_id,
                ),
            )
            await conn.commit()
        return updated

    async def delete_resume(self, resume_id: str) -> None:
        """Delete a resume. Its job, if any, is kept."""
        async with self._get_connection() as conn:
            await conn.execute(
                "DELETE FROM resumes WHERE id = ? AND user_id = ?",
                (resume_id, self.user_id),
            )
            await conn.commit()

    async def _insert_resume(self, resume: Resume) -> None:
        async with self._get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO resumes (
                    id, user_id, name, is_base_resume, job_id, data, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    resume.id,
                    self.user_id,
                    resume.name,
                    1 if resume.is_base_resume else 0,
                    resume.job_id,
                    resume.model_dump_json(),
                    resume.created_at.isoformat(),
                    resume.updated_at.isoformat(),
                ),
            )
            await conn.commit()

    # Profile

    async def get_profile(self) -> Profile:
        """Get the user's profile, creating an empty one on first access."""
        async with self._get_connection() as conn:
            cursor = await conn.execute(
                "SELECT data FROM profiles WHERE user_id = ?",
                (self.user_id,),
            )
            row = await cursor.fetchone()

        if row is not None:
            return Profile.model_validate_json(row["data"])

        profile = Profile(id=_new_id(), user_id=self.user_id)
        await self.update_profile(profile)
        return profile

    async def update_profile(self, profile: Profile) -> None:
        """Replace the stored profile."""
        profile = profile.model_copy(
            update={"user_id": self.user_id, "updated_at": datetime.now(UTC)}
        )
        async with self._get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO profiles (user_id, data, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    data = excluded.data, updated_at = excluded.updated_at
                """,
                (self.user_id, profile.model_dump_json(), profile.updated_at.isoformat()),
            )
            await conn.commit()

    async def import_resume(self, data: ProfileData) -> Profile:
        """Add imported content to the stored profile (additive merge)."""
        merged = reconcile(await self.get_profile(), data)
        await self.update_profile(merged)
        return merged
