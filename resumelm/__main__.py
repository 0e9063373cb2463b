"""Command line entry point for ResumeLM."""

import argparse
import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from resumelm import __version__
from resumelm.ai.credentials import AIConfig, Entitlement
from resumelm.ai.errors import ResumeLMError
from resumelm.ai.llm import CompletionClient
from resumelm.config.settings import Settings
from resumelm.extraction.service import ExtractionService
from resumelm.pipeline.base_resume import BASE_RESUME_MODES, BaseResumeBuilder, ProfileService
from resumelm.pipeline.importing import ImportPipeline
from resumelm.pipeline.progress import describe_failure, progress_label
from resumelm.pipeline.states import RunState, TailoringMode
from resumelm.pipeline.tailoring import TailoringPipeline, TailoringRequest
from resumelm.store.repository import SQLiteDocumentStore
from resumelm.utils.logging import configure_logging
from resumelm.writing.cover_letter import CoverLetterWriter
from resumelm.writing.suggestions import SUGGESTION_MODELS, SuggestionWriter, apply_suggestion


def _read_text(path: Path) -> str:
    if str(path) == "-":
        return sys.stdin.read()
    return path.read_text(encoding="utf-8")


def _load_document(path: Path) -> dict:
    """Load a YAML or JSON mapping from disk."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping in {path}")
    return data


def _print_json(payload: Any) -> None:
    if hasattr(payload, "model_dump"):
        payload = payload.model_dump(mode="json")
    print(json.dumps(payload, indent=2, default=str))


def _print_progress(state: RunState) -> None:
    print(f"[{progress_label(state.stage).value}] {state.stage.value}")


def _print_failure(stage, error: BaseException, settings: Settings) -> None:
    message = describe_failure(stage, error, datetime.now(), settings)
    print(f"{message.title}: {message.description}", file=sys.stderr)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="resumelm",
        description="ResumeLM: AI-assisted resume tailoring and import",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m resumelm format-job posting.txt
  python -m resumelm tailor --base-resume <id> --job posting.txt
  python -m resumelm import-profile resume.txt
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override log level from settings",
    )
    parser.add_argument(
        "--db",
        type=Path,
        help="Path to the SQLite database (defaults to RESUMELM_DB_PATH)",
    )
    parser.add_argument(
        "--ai-config",
        type=Path,
        help="YAML/JSON file with the model choice and API keys (model, api_keys)",
    )
    parser.add_argument(
        "--pro",
        action="store_true",
        help="Treat the user as an active Pro subscriber (enables server keys)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    format_parser = subparsers.add_parser(
        "format-job", help="Convert a job description into a structured listing"
    )
    format_parser.add_argument("text_file", type=Path, help="Job description text ('-' for stdin)")

    tailor_parser = subparsers.add_parser(
        "tailor", help="Create a tailored resume from a base resume"
    )
    tailor_parser.add_argument("--base-resume", required=True, help="Base resume id")
    tailor_parser.add_argument("--job", type=Path, help="Job description text file")
    tailor_parser.add_argument(
        "--direct-copy",
        action="store_true",
        help="Copy the base resume content instead of tailoring it with AI",
    )

    import_parser = subparsers.add_parser("import", help="Add text content to a resume")
    import_parser.add_argument("text_file", type=Path, help="Resume text ('-' for stdin)")
    import_parser.add_argument("--resume", required=True, help="Resume id to import into")

    import_profile_parser = subparsers.add_parser(
        "import-profile", help="Add text content to your profile"
    )
    import_profile_parser.add_argument("text_file", type=Path, help="Resume text ('-' for stdin)")

    base_parser = subparsers.add_parser("create-base", help="Create a base resume")
    base_parser.add_argument("--role", required=True, help="Target role")
    base_parser.add_argument("--mode", choices=BASE_RESUME_MODES, default="fresh")
    base_parser.add_argument(
        "--resume-text", type=Path, help="Resume text file (import-resume mode)"
    )
    base_parser.add_argument(
        "--select",
        nargs="*",
        metavar="KEY",
        help="Profile item keys to include (import-profile mode; default: all)",
    )

    reset_parser = subparsers.add_parser("reset-profile", help="Clear your profile")
    reset_parser.add_argument("--yes", action="store_true", help="Confirm the reset")

    cover_parser = subparsers.add_parser(
        "cover-letter", help="Generate a cover letter for a tailored resume"
    )
    cover_parser.add_argument("--resume", required=True, help="Tailored resume id")
    cover_parser.add_argument("--prompt", help="Additional instructions")

    suggest_parser = subparsers.add_parser(
        "suggest", help="Suggest an improved version of one resume entry"
    )
    suggest_parser.add_argument("--resume", required=True, help="Resume id")
    suggest_parser.add_argument("--section", required=True, choices=sorted(SUGGESTION_MODELS))
    suggest_parser.add_argument("--index", type=int, default=0, help="Entry position (from 0)")
    suggest_parser.add_argument("--prompt", help="What to improve")
    suggest_parser.add_argument(
        "--apply", action="store_true", help="Save the suggestion to the resume"
    )

    resume_parser = subparsers.add_parser("resume", help="Inspect stored resumes")
    resume_subparsers = resume_parser.add_subparsers(dest="resume_command")
    resume_subparsers.required = True
    resume_show = resume_subparsers.add_parser("show", help="Show one resume")
    resume_show.add_argument("resume_id", help="Resume id")
    resume_list = resume_subparsers.add_parser("list", help="List resumes")
    resume_list.add_argument("--base-only", action="store_true", help="Only base resumes")

    return parser


async def _with_store(
    settings: Settings, fn: Callable[[SQLiteDocumentStore], Awaitable[int]]
) -> int:
    store = SQLiteDocumentStore(settings.db_path)
    await store.initialize()
    try:
        return await fn(store)
    finally:
        await store.close()


async def _run_command(
    parsed: argparse.Namespace,
    settings: Settings,
    config: AIConfig,
    extraction: ExtractionService,
    llm: CompletionClient,
) -> int:
    if parsed.command == "format-job":
        listing = await extraction.format_job_listing(_read_text(parsed.text_file), config)
        _print_json(listing)
        return 0

    if parsed.command == "tailor":

        async def _tailor(store: SQLiteDocumentStore) -> int:
            request = TailoringRequest(
                base_resume_id=parsed.base_resume,
                job_description=_read_text(parsed.job) if parsed.job else "",
                mode=TailoringMode.DIRECT_COPY if parsed.direct_copy else TailoringMode.AI,
                config=config,
            )
            pipeline = TailoringPipeline(store, extraction, progress_callback=_print_progress)
            outcome = await pipeline.run(request)
            if not outcome.success:
                _print_failure(outcome.state.failed_stage, outcome.error, settings)
                return 1
            print(f"Created resume {outcome.resume.id}: {outcome.resume.name}")
            return 0

        return await _with_store(settings, _tailor)

    if parsed.command == "import":

        async def _import(store: SQLiteDocumentStore) -> int:
            existing = await store.get_resume_by_id(parsed.resume)
            if existing is None:
                print(f"Error: resume not found: {parsed.resume}", file=sys.stderr)
                return 1
            pipeline = ImportPipeline(extraction, progress_callback=_print_progress)
            outcome = await pipeline.import_into_resume(
                _read_text(parsed.text_file), existing, config
            )
            if not outcome.success:
                _print_failure(outcome.state.failed_stage, outcome.error, settings)
                return 1
            await store.update_resume(outcome.entity)
            print(f"Updated resume {existing.id}")
            return 0

        return await _with_store(settings, _import)

    if parsed.command == "import-profile":

        async def _import_profile(store: SQLiteDocumentStore) -> int:
            pipeline = ImportPipeline(extraction, store=store, progress_callback=_print_progress)
            outcome = await pipeline.import_into_profile(
                _read_text(parsed.text_file), await store.get_profile(), config, save=True
            )
            if not outcome.success:
                _print_failure(outcome.state.failed_stage, outcome.error, settings)
                return 1
            print("Profile updated")
            return 0

        return await _with_store(settings, _import_profile)

    if parsed.command == "create-base":

        async def _create_base(store: SQLiteDocumentStore) -> int:
            builder = BaseResumeBuilder(store, extraction)
            resume = await builder.create(
                parsed.role,
                parsed.mode,
                selected_items=parsed.select,
                resume_text=_read_text(parsed.resume_text) if parsed.resume_text else None,
                config=config,
            )
            print(f"Created base resume {resume.id}: {resume.name}")
            return 0

        return await _with_store(settings, _create_base)

    if parsed.command == "reset-profile":
        if not parsed.yes:
            print("Refusing to reset the profile without --yes", file=sys.stderr)
            return 1

        async def _reset(store: SQLiteDocumentStore) -> int:
            await ProfileService(store).reset()
            print("Profile reset")
            return 0

        return await _with_store(settings, _reset)

    if parsed.command == "cover-letter":

        async def _cover_letter(store: SQLiteDocumentStore) -> int:
            resume = await store.get_resume_by_id(parsed.resume)
            if resume is None:
                print(f"Error: resume not found: {parsed.resume}", file=sys.stderr)
                return 1
            job = await store.get_job(resume.job_id) if resume.job_id else None

            printed = 0

            def _on_update(text: str) -> None:
                nonlocal printed
                sys.stdout.write(text[printed:])
                sys.stdout.flush()
                printed = len(text)

            writer = CoverLetterWriter(llm)
            updated = await writer.generate(
                resume, job, config, custom_prompt=parsed.prompt, on_update=_on_update
            )
            print()
            await store.update_resume(updated)
            return 0

        return await _with_store(settings, _cover_letter)

    if parsed.command == "suggest":

        async def _suggest(store: SQLiteDocumentStore) -> int:
            resume = await store.get_resume_by_id(parsed.resume)
            if resume is None:
                print(f"Error: resume not found: {parsed.resume}", file=sys.stderr)
                return 1
            job = await store.get_job(resume.job_id) if resume.job_id else None
            suggestion = await SuggestionWriter(llm).suggest(
                resume, parsed.section, parsed.index, parsed.prompt, job, config
            )
            _print_json(suggestion.improved)
            if suggestion.rationale:
                print(suggestion.rationale)
            if parsed.apply:
                await store.update_resume(apply_suggestion(resume, suggestion))
                print(f"Updated resume {resume.id}")
            return 0

        return await _with_store(settings, _suggest)

    if parsed.command == "resume":

        async def _resume(store: SQLiteDocumentStore) -> int:
            if parsed.resume_command == "show":
                resume = await store.get_resume_by_id(parsed.resume_id)
                if resume is None:
                    print(f"Error: resume not found: {parsed.resume_id}", file=sys.stderr)
                    return 1
                _print_json(resume)
                return 0
            for resume in await store.list_resumes(base_only=parsed.base_only):
                kind = "base" if resume.is_base_resume else "tailored"
                print(f"{resume.id}  [{kind}]  {resume.name}")
            return 0

        return await _with_store(settings, _resume)

    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point for the application.

    Args:
        args: Command line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    try:
        settings = Settings()
    except Exception as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        return 1

    if parsed.db is not None:
        settings.db_path = parsed.db

    logger = configure_logging(level=parsed.log_level or settings.log_level)

    if parsed.command is None:
        parser.print_help()
        return 0

    try:
        config = AIConfig.model_validate(
            _load_document(parsed.ai_config) if parsed.ai_config else {}
        )
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error loading AI config: {e}", file=sys.stderr)
        return 1

    entitlement = Entitlement(plan="pro", status="active") if parsed.pro else Entitlement()
    llm = CompletionClient(settings=settings, entitlement=entitlement)
    extraction = ExtractionService(llm)

    logger.info(f"ResumeLM v{__version__} running {parsed.command}")
    try:
        return asyncio.run(_run_command(parsed, settings, config, extraction, llm))
    except ResumeLMError as e:
        _print_failure(None, e, settings)
        return 1
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
