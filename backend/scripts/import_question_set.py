"""Import a question set from four CSV files.

Usage:
    python scripts/import_question_set.py DIR [--dry-run] [--actor ID]

DIR must contain meta.csv, sections.csv, questions.csv and options.csv.
With --dry-run the tables are only validated and the canonical document and
its hash are printed. Otherwise a new draft revision is written to the
database from DATABASE_URL.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from app.core.config import get_settings
from app.core.exceptions import ContentError, ContentValidationError
from app.core.logging import configure_structlog
from app.db.base import close_db, get_session_factory, init_db
from app.domain.config import ContentConfig
from app.domain.hashing import content_hash
from app.domain.ingestion import META_TABLE, OPTIONS_TABLE, QUESTIONS_TABLE, SECTIONS_TABLE, ingest_tables
from app.services.content_admin_service import ContentAdminService
from app.services.import_service import QuestionSetImportService
from app.store.sql import SqlContentRepository


def _read_tables(directory: Path) -> dict[str, str]:
    return {
        name: (directory / name).read_text(encoding="utf-8")
        for name in (META_TABLE, SECTIONS_TABLE, QUESTIONS_TABLE, OPTIONS_TABLE)
    }


def _print_errors(errors) -> None:
    print(f"Import failed with {len(errors)} error(s):")
    for error in errors:
        print(f"  {error}")


async def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("directory", type=Path)
    parser.add_argument("--dry-run", action="store_true")
    parser.add_argument("--actor", default="cli")
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_structlog(log_level="WARNING", json_logs=False)
    config = ContentConfig.from_settings(settings)

    try:
        tables = _read_tables(args.directory)
    except OSError as exc:
        print(f"Cannot read tables: {exc}")
        return 2

    if args.dry_run:
        result = ingest_tables(
            tables[META_TABLE], tables[SECTIONS_TABLE], tables[QUESTIONS_TABLE], tables[OPTIONS_TABLE], config
        )
        if not result.ok:
            _print_errors(result.errors)
            return 1
        print(json.dumps(result.document, indent=2, ensure_ascii=False))
        print(f"\ncontent_hash: {content_hash(result.document)}")
        for warning in result.warnings:
            print(f"warning: {warning}")
        return 0

    await init_db()
    try:
        importer = QuestionSetImportService(ContentAdminService(SqlContentRepository(get_session_factory()), config))
        outcome = await importer.import_tables(
            tables[META_TABLE],
            tables[SECTIONS_TABLE],
            tables[QUESTIONS_TABLE],
            tables[OPTIONS_TABLE],
            actor_id=args.actor,
        )
    except ContentValidationError as exc:
        _print_errors(exc.errors)
        return 1
    except ContentError as exc:
        print(f"Import failed: {exc}")
        return 1
    finally:
        await close_db()

    revision = outcome.created.revision
    print(f"Imported {outcome.identity.slug} as revision {revision.revision_number} ({revision.id})")
    print(f"content_hash: {revision.content_hash}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
