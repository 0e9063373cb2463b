"""Merging extracted data into existing profiles and resumes."""

from resumelm.reconcile.engine import (
    SkillMergePolicy,
    empty_resume,
    merge_skills,
    reconcile,
    reset_profile,
)

__all__ = [
    "SkillMergePolicy",
    "empty_resume",
    "merge_skills",
    "reconcile",
    "reset_profile",
]
