"""Persistence of profiles, resumes and jobs."""

from resumelm.store.protocol import BaseResumeMode, DocumentStore
from resumelm.store.repository import SQLiteDocumentStore, tailored_resume_name

__all__ = [
    "BaseResumeMode",
    "DocumentStore",
    "SQLiteDocumentStore",
    "tailored_resume_name",
]
