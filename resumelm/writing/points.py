"""Bullet point generation and improvement for resume entries."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field, field_validator

from resumelm.ai.credentials import AIConfig
from resumelm.ai.errors import InputValidationError
from resumelm.ai.llm import CompletionClient
from resumelm.extraction.prompts import (
    IMPROVE_POINT_SYSTEM_PROMPT,
    PROJECT_POINTS_SYSTEM_PROMPT,
    WORK_POINTS_SYSTEM_PROMPT,
)
from resumelm.utils.text import is_blank

logger = logging.getLogger(__name__)

DEFAULT_POINT_COUNT = 3


class GeneratedPoints(BaseModel):
    """LLM response structure for bullet point generation."""

    points: list[str] = Field(default_factory=list, description="Resume bullet points")

    @field_validator("points", mode="before")
    @classmethod
    def drop_blank_points(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        return [str(p).strip() for p in v if p is not None and str(p).strip()]


def _custom_instructions(custom_prompt: str | None) -> str:
    if is_blank(custom_prompt):
        return ""
    return f"\n\nAdditional instructions from the user:\n{custom_prompt.strip()}"


def _technologies(technologies: list[str]) -> str:
    return ", ".join(t for t in technologies if t) or "not specified"


class BulletWriter:
    """Writes and rewrites resume bullet points.

    Args:
        llm: Completion client. A default client is created if not provided.
    """

    def __init__(self, llm: CompletionClient | None = None):
        self.llm = llm or CompletionClient()

    async def generate_work_experience_points(
        self,
        position: str,
        company: str,
        technologies: list[str],
        target_role: str,
        num_points: int = DEFAULT_POINT_COUNT,
        custom_prompt: str | None = None,
        config: AIConfig | dict | None = None,
    ) -> GeneratedPoints:
        """Generate bullet points for one work experience entry."""
        if is_blank(position):
            raise InputValidationError("Position is required to generate points")
        if num_points < 1:
            raise InputValidationError("Number of points must be at least 1")

        prompt = (
            f"Position: {position}\n"
            f"Company: {company or 'not specified'}\n"
            f"Technologies: {_technologies(technologies)}\n"
            f"Target role: {target_role or 'not specified'}\n"
            f"Number of points: {num_points}"
            f"{_custom_instructions(custom_prompt)}"
        )
        logger.info(f"Generating {num_points} work experience points for {position}")
        return await self.llm.generate_structured(
            prompt=prompt,
            output_model=GeneratedPoints,
            config=config,
            system_prompt=WORK_POINTS_SYSTEM_PROMPT,
        )

    async def generate_project_points(
        self,
        project_name: str,
        technologies: list[str],
        target_role: str,
        num_points: int = DEFAULT_POINT_COUNT,
        custom_prompt: str | None = None,
        config: AIConfig | dict | None = None,
    ) -> GeneratedPoints:
        """Generate bullet points for one project entry."""
        if is_blank(project_name):
            raise InputValidationError("Project name is required to generate points")
        if num_points < 1:
            raise InputValidationError("Number of points must be at least 1")

        prompt = (
            f"Project: {project_name}\n"
            f"Technologies: {_technologies(technologies)}\n"
            f"Target role: {target_role or 'not specified'}\n"
            f"Number of points: {num_points}"
            f"{_custom_instructions(custom_prompt)}"
        )
        logger.info(f"Generating {num_points} project points for {project_name}")
        return await self.llm.generate_structured(
            prompt=prompt,
            output_model=GeneratedPoints,
            config=config,
            system_prompt=PROJECT_POINTS_SYSTEM_PROMPT,
        )

    async def improve_work_experience(
        self,
        point: str,
        custom_prompt: str | None = None,
        config: AIConfig | dict | None = None,
    ) -> str:
        """Rewrite one work experience bullet point."""
        return await self._improve(point, "work experience", custom_prompt, config)

    async def improve_project(
        self,
        point: str,
        custom_prompt: str | None = None,
        config: AIConfig | dict | None = None,
    ) -> str:
        """Rewrite one project bullet point."""
        return await self._improve(point, "project", custom_prompt, config)

    async def _improve(
        self,
        point: str,
        section: str,
        custom_prompt: str | None,
        config: AIConfig | dict | None,
    ) -> str:
        if is_blank(point):
            raise InputValidationError("Please enter a bullet point to improve")

        prompt = (
            f"Improve this {section} bullet point:\n{point.strip()}"
            f"{_custom_instructions(custom_prompt)}"
        )
        improved = await self.llm.generate_text(
            prompt=prompt, config=config, system_prompt=IMPROVE_POINT_SYSTEM_PROMPT
        )
        # Models sometimes wrap the answer in quotes or a leading bullet
        return improved.strip().strip('"').lstrip("-• ").strip()
