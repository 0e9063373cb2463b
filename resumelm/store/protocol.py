"""Persistence boundary used by the pipelines.

Pipelines only depend on this protocol; ``SQLiteDocumentStore`` is the bundled
implementation and tests substitute mocks.
"""

from __future__ import annotations

from typing import Literal, Protocol

from resumelm.documents.models import (
    Job,
    JobListing,
    Profile,
    ProfileData,
    Resume,
    ResumeDraft,
)

BaseResumeMode = Literal["fresh", "import-profile", "import-resume"]


class DocumentStore(Protocol):
    """Async persistence operations for one user's documents."""

    async def create_job(self, listing: JobListing) -> Job: ...

    async def get_job(self, job_id: str) -> Job | None: ...

    async def get_resume_by_id(self, resume_id: str) -> Resume | None: ...

    async def create_tailored_resume(
        self,
        base_resume: Resume,
        job_id: str | None,
        title: str,
        company: str,
        content: ResumeDraft,
    ) -> Resume: ...

    async def create_base_resume(
        self, target_role: str, mode: BaseResumeMode, content: ResumeDraft
    ) -> Resume: ...

    async def update_resume(self, resume: Resume) -> Resume: ...

    async def delete_resume(self, resume_id: str) -> None: ...

    async def get_profile(self) -> Profile: ...

    async def update_profile(self, profile: Profile) -> None: ...

    async def import_resume(self, data: ProfileData) -> Profile: ...
