"""Explicit configuration for the content store.

Built once from Settings and passed into the validator, ingestion pipeline,
revision store, fallback loader and resolver. ``ContentConfig()`` with no
arguments is the pure defaults table, so domain code never reads the
environment.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from app.domain.content import ContentKind, Role

# (kind, assessment_type, content_version) -> bundled file, relative to the fallback dir
DEFAULT_FALLBACK_FILES: Mapping[tuple[str, str, str], str] = MappingProxyType({
    (ContentKind.QUESTION_SET.value, "gut-check", "2"): "gut-check/questions_v2.json",
    (ContentKind.RESULTS_PACK.value, "gut-check", "1"): "gut-check/results_v1.json",
    (ContentKind.RESULTS_PACK.value, "gut-check", "2"): "gut-check/results_v2.json",
})

DEFAULT_SCHEMA_TAGS: Mapping[str, str] = MappingProxyType({
    ContentKind.QUESTION_SET.value: "v2_question_schema_1",
    ContentKind.RESULTS_PACK.value: "v2_pack_schema_1",
})

CONTENT_DEFAULTS: Mapping[str, Any] = MappingProxyType({
    "question_schema_version": "2",
    "revision_insert_attempts": 2,
    "privileged_roles": frozenset({Role.EDITOR, Role.ADMIN}),
    "publish_roles": frozenset({Role.ADMIN}),
    "fallback_dir": None,
})


@dataclass(frozen=True)
class ContentConfig:
    question_schema_version: str = CONTENT_DEFAULTS["question_schema_version"]
    revision_insert_attempts: int = CONTENT_DEFAULTS["revision_insert_attempts"]
    privileged_roles: frozenset[Role] = CONTENT_DEFAULTS["privileged_roles"]
    publish_roles: frozenset[Role] = CONTENT_DEFAULTS["publish_roles"]
    # None means the bundled app/content/fallback directory
    fallback_dir: str | None = CONTENT_DEFAULTS["fallback_dir"]
    fallback_files: Mapping[tuple[str, str, str], str] = field(default_factory=lambda: DEFAULT_FALLBACK_FILES)
    schema_tags: Mapping[str, str] = field(default_factory=lambda: DEFAULT_SCHEMA_TAGS)
    level_aliases: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.revision_insert_attempts < 1:
            raise ValueError("revision_insert_attempts must be at least 1")

    @classmethod
    def from_settings(cls, settings) -> "ContentConfig":
        """Build the config from application Settings (see app.core.config)."""
        return cls(
            question_schema_version=settings.question_schema_version,
            revision_insert_attempts=settings.revision_insert_attempts,
            privileged_roles=frozenset(Role(r) for r in settings.privileged_roles),
            publish_roles=frozenset(Role(r) for r in settings.publish_roles),
            fallback_dir=settings.fallback_content_dir or None,
            level_aliases=dict(settings.results_level_aliases),
        )

    def schema_tag(self, kind: ContentKind) -> str:
        return self.schema_tags[ContentKind(kind).value]

    def is_privileged(self, role: Role | str | None) -> bool:
        if role is None:
            return False
        try:
            return Role(role) in self.privileged_roles
        except ValueError:
            return False

    def can_publish(self, role: Role | str | None) -> bool:
        if role is None:
            return False
        try:
            return Role(role) in self.publish_roles
        except ValueError:
            return False
