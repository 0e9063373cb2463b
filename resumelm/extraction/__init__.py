"""Structured extraction: unstructured text to fixed schemas via one AI call."""

from resumelm.extraction.service import (
    SCHEMAS,
    ExtractionContext,
    ExtractionKind,
    ExtractionService,
)

__all__ = ["SCHEMAS", "ExtractionContext", "ExtractionKind", "ExtractionService"]
