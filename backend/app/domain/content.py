"""Content kinds, identity descriptors and lifecycle enums.

Pure domain types. No DB access.

Two content kinds share one versioning pattern:
- question_set: keyed by (assessment_type, assessment_version, locale)
- results_pack: keyed by (assessment_type, results_version, level_id)

Every descriptor maps onto the same stored identity columns
(kind, assessment_type, content_version, variant) plus a unique slug.
"""

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar

_VERSION_LABEL = re.compile(r"^[vV](\d+)$")
_LEVEL_ID = re.compile(r"^level[1-4]$")

DEFAULT_VARIANT = "default"
MIN_VERSION = 1
MAX_VERSION = 99


class ContentKind(StrEnum):
    QUESTION_SET = "question_set"
    RESULTS_PACK = "results_pack"


class IdentityStatus(StrEnum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class RevisionStatus(StrEnum):
    """The pointer decides what is live. ``published`` means released at least once."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class PointerChannel(StrEnum):
    PUBLISHED = "published"
    PREVIEW = "preview"


class ResolutionSource(StrEnum):
    STORE = "store"
    FILE = "file"


class Role(StrEnum):
    USER = "user"
    EDITOR = "editor"
    ADMIN = "admin"


def normalize_version_label(value: str | int) -> str:
    """Return a version label without a leading "v" ("v2" and "2" are the same version)."""
    text = str(value).strip()
    match = _VERSION_LABEL.match(text)
    if match:
        return match.group(1)
    return text


def parse_version(value: str | list[str] | None, default: int = 2) -> int:
    """Parse a version query parameter, bounded to 1..99.

    Lists use their first element. Anything unparseable or out of bounds
    returns ``default``.
    """
    if not value:
        return default
    raw = value[0] if isinstance(value, list) else value
    try:
        number = int(normalize_version_label(raw))
    except ValueError:
        return default
    if number < MIN_VERSION or number > MAX_VERSION:
        return default
    return number


def normalize_level_id(level_id: str, aliases: dict[str, str] | None = None) -> str | None:
    """Map a scoring level key onto ``level1``..``level4``.

    Known aliases (e.g. avatar ids emitted by newer scoring versions) are
    translated first. Returns None when the key cannot be normalized.
    """
    candidate = level_id.strip()
    if _LEVEL_ID.match(candidate):
        return candidate
    mapped = (aliases or {}).get(candidate)
    if mapped and _LEVEL_ID.match(mapped):
        return mapped
    return None


@dataclass(frozen=True)
class QuestionSetKey:
    """Discriminating keys of a question set identity."""

    kind: ClassVar[ContentKind] = ContentKind.QUESTION_SET

    assessment_type: str
    assessment_version: str
    locale: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "assessment_type", self.assessment_type.strip())
        object.__setattr__(self, "assessment_version", normalize_version_label(self.assessment_version))
        locale = self.locale.strip() if self.locale else None
        object.__setattr__(self, "locale", locale or None)

    @property
    def content_version(self) -> str:
        return self.assessment_version

    @property
    def variant(self) -> str | None:
        return self.locale

    @property
    def slug(self) -> str:
        return build_slug(self.kind, self.assessment_type, self.content_version, self.variant)


@dataclass(frozen=True)
class ResultsPackKey:
    """Discriminating keys of a results pack identity."""

    kind: ClassVar[ContentKind] = ContentKind.RESULTS_PACK

    assessment_type: str
    results_version: str
    level_id: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "assessment_type", self.assessment_type.strip())
        object.__setattr__(self, "results_version", normalize_version_label(self.results_version))
        object.__setattr__(self, "level_id", self.level_id.strip())

    @property
    def content_version(self) -> str:
        return self.results_version

    @property
    def variant(self) -> str | None:
        return self.level_id

    @property
    def slug(self) -> str:
        return build_slug(self.kind, self.assessment_type, self.content_version, self.variant)


IdentityDescriptor = QuestionSetKey | ResultsPackKey


def build_slug(kind: ContentKind, assessment_type: str, content_version: str, variant: str | None) -> str:
    return f"{kind.value}:{assessment_type}:{content_version}:{variant or DEFAULT_VARIANT}"


def descriptor_from_columns(
    kind: ContentKind | str,
    assessment_type: str,
    content_version: str,
    variant: str | None,
) -> IdentityDescriptor:
    """Rebuild a descriptor from stored identity columns."""
    kind = ContentKind(kind)
    if kind == ContentKind.QUESTION_SET:
        return QuestionSetKey(assessment_type, content_version, variant)
    if kind == ContentKind.RESULTS_PACK:
        if not variant:
            raise ValueError("results_pack identities require a level_id")
        return ResultsPackKey(assessment_type, content_version, variant)
    raise ValueError(f"Unknown content kind: {kind}")
