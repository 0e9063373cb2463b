"""Profiles, resumes and jobs."""

from resumelm.documents.models import (
    CoverLetter,
    Education,
    Job,
    JobListing,
    Profile,
    ProfileData,
    Project,
    Resume,
    ResumeDraft,
    ResumeSections,
    SkillCategory,
    WorkExperience,
)

__all__ = [
    "CoverLetter",
    "Education",
    "Job",
    "JobListing",
    "Profile",
    "ProfileData",
    "Project",
    "Resume",
    "ResumeDraft",
    "ResumeSections",
    "SkillCategory",
    "WorkExperience",
]
