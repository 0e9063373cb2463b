"""Narrative writing helpers: bullet points, cover letters and edit suggestions."""

from resumelm.writing.cover_letter import CoverLetterWriter
from resumelm.writing.points import BulletWriter, GeneratedPoints
from resumelm.writing.suggestions import (
    SectionSuggestion,
    SuggestionWriter,
    WholeResumeEdit,
    apply_suggestion,
    apply_whole_resume_edit,
    revert_whole_resume_edit,
)

__all__ = [
    "BulletWriter",
    "CoverLetterWriter",
    "GeneratedPoints",
    "SectionSuggestion",
    "SuggestionWriter",
    "WholeResumeEdit",
    "apply_suggestion",
    "apply_whole_resume_edit",
    "revert_whole_resume_edit",
]
