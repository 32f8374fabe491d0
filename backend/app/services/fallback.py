"""FileFallbackLoader: bundled JSON documents for the last resolution tier.

The registry in ``ContentConfig.fallback_files`` maps
(kind, assessment_type, content_version) to a file under the fallback
directory. Question set files hold one document (used for every locale).
Results files hold every level of one results version:

    {"version": "2", "assessmentType": "gut-check", "packs": {"level1": {...}, ...}}

Files are read on every call; there is no in-process cache.
"""

import json
from dataclasses import dataclass
from pathlib import Path

import structlog

from app.core.exceptions import ContentNotConfiguredError
from app.domain.config import ContentConfig
from app.domain.content import ContentKind, IdentityDescriptor, ResultsPackKey
from app.domain.hashing import content_hash
from app.domain.validation import validate

logger = structlog.get_logger(__name__)

BUNDLED_FALLBACK_DIR = Path(__file__).resolve().parent.parent / "content" / "fallback"


@dataclass(frozen=True)
class FallbackDocument:
    document: dict
    path: str
    content_hash: str


class FileFallbackLoader:
    def __init__(self, config: ContentConfig | None = None):
        self.config = config or ContentConfig()
        self.base_dir = Path(self.config.fallback_dir) if self.config.fallback_dir else BUNDLED_FALLBACK_DIR

    def path_for(self, descriptor: IdentityDescriptor) -> Path | None:
        key = (descriptor.kind.value, descriptor.assessment_type, descriptor.content_version)
        relative = self.config.fallback_files.get(key)
        return self.base_dir / relative if relative else None

    def load(self, descriptor: IdentityDescriptor) -> FallbackDocument:
        """Load and validate the bundled document for ``descriptor``.

        Raises:
            ContentNotConfiguredError: no registry entry, unreadable file, missing
                level, or a document that fails validation
        """
        path = self.path_for(descriptor)
        if path is None:
            raise ContentNotConfiguredError(descriptor.slug, "no bundled fallback registered")

        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error("fallback_unreadable", slug=descriptor.slug, path=str(path), error=str(exc))
            raise ContentNotConfiguredError(descriptor.slug, "bundled fallback is unreadable") from exc

        candidate = raw
        if isinstance(descriptor, ResultsPackKey):
            packs = raw.get("packs") if isinstance(raw, dict) else None
            candidate = packs.get(descriptor.level_id) if isinstance(packs, dict) else None
            if candidate is None:
                raise ContentNotConfiguredError(
                    descriptor.slug, f"bundled fallback has no pack for level '{descriptor.level_id}'"
                )

        result = validate(descriptor.kind, candidate, self.config)
        if not result.ok:
            logger.error(
                "fallback_invalid",
                slug=descriptor.slug,
                path=str(path),
                errors=[str(e) for e in result.errors],
            )
            raise ContentNotConfiguredError(descriptor.slug, "bundled fallback fails validation")

        if descriptor.kind == ContentKind.QUESTION_SET and result.normalized["assessmentType"] != descriptor.assessment_type:
            raise ContentNotConfiguredError(descriptor.slug, "bundled fallback is for another assessment type")

        return FallbackDocument(
            document=result.normalized,
            path=str(path),
            content_hash=content_hash(result.normalized),
        )
