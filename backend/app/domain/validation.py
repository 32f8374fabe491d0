"""Structured document validation for versioned content.

Pure domain functions. No DB access.

``validate(kind, candidate, config)`` is the single entry point. Each content
kind contributes a rule function through ``_RULES``; malformed input is a
normal outcome reported as an aggregated issue list, never an exception.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from app.domain.config import ContentConfig
from app.domain.content import ContentKind

OPTION_VALUES = (0, 1, 2, 3)

RESULTS_REQUIRED_STRINGS = ("label", "summary", "methodPositioning")
RESULTS_REQUIRED_LISTS = ("keyPatterns", "firstFocusAreas")
RESULTS_OPTIONAL_STRINGS = ("copyVersion",)

# page -> (required fields, optional fields). Fields ending in "Bullets"/"Pills" are string lists.
FLOW_PAGES: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "page1": (
        ("headline", "body", "snapshotBullets", "meaningBody"),
        ("snapshotTitle", "meaningTitle"),
    ),
    "page2": (
        ("headline", "stepBullets", "videoCtaLabel", "videoAssetUrl"),
        ("emailHelper", "pdfHelper"),
    ),
    "page3": (
        (
            "problemHeadline",
            "problemBody",
            "tryBullets",
            "mechanismTitle",
            "mechanismBodyTop",
            "mechanismPills",
            "methodTitle",
            "methodBody",
            "methodLearnBullets",
            "methodCtaLabel",
            "methodCtaUrl",
            "methodEmailLinkLabel",
        ),
        ("tryTitle", "tryCloser"),
    ),
}

CHANNEL_NAMES = ("web", "email", "pdf")


@dataclass(frozen=True)
class ValidationIssue:
    """One structured problem: where it is and what is wrong."""

    location: str
    message: str

    def __str__(self) -> str:
        return f"{self.location}: {self.message}" if self.location else self.message

    def to_dict(self) -> dict[str, str]:
        return {"location": self.location, "message": self.message}


@dataclass
class ValidationResult:
    ok: bool
    normalized: dict | None = None
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)


class _Issues:
    """Collects errors and warnings while a rule function walks a document."""

    def __init__(self) -> None:
        self.errors: list[ValidationIssue] = []
        self.warnings: list[ValidationIssue] = []

    def error(self, location: str, message: str) -> None:
        self.errors.append(ValidationIssue(location, message))

    def warn(self, location: str, message: str) -> None:
        self.warnings.append(ValidationIssue(location, message))


def _text(value: Any) -> str | None:
    """Trimmed non-empty string, or None."""
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _required_text(obj: dict, key: str, location: str, issues: _Issues) -> str | None:
    value = _text(obj.get(key))
    if value is None:
        issues.error(f"{location}.{key}" if location else key, "must be a non-empty string")
    return value


def _text_list(obj: dict, key: str, location: str, issues: _Issues, required: bool = True) -> list[str] | None:
    loc = f"{location}.{key}" if location else key
    raw = obj.get(key)
    if raw is None and not required:
        return None
    if not isinstance(raw, list) or not raw:
        issues.error(loc, "must be a non-empty list of strings")
        return None
    cleaned = []
    for i, item in enumerate(raw):
        text = _text(item)
        if text is None:
            issues.error(f"{loc}[{i}]", "must be a non-empty string")
        else:
            cleaned.append(text)
    return cleaned


# ---------------------------------------------------------------------------
# Question sets
# ---------------------------------------------------------------------------


def check_option_values(values: list[Any]) -> tuple[list[int], list[int], list[Any]]:
    """Compare declared option values against {0,1,2,3}.

    Returns (missing, duplicated, out_of_range). All three empty means the
    exactly-four-options invariant holds. Shared with the tabular pipeline.
    """
    seen: set[int] = set()
    duplicated: list[int] = []
    out_of_range: list[Any] = []
    for value in values:
        if not _is_int(value) or value not in OPTION_VALUES:
            out_of_range.append(value)
            continue
        if value in seen and value not in duplicated:
            duplicated.append(value)
        seen.add(value)
    missing = [v for v in OPTION_VALUES if v not in seen]
    return missing, sorted(duplicated), out_of_range


def _option_issues(location: str, values: list[Any], count: int, issues: _Issues) -> None:
    if count != len(OPTION_VALUES):
        issues.error(f"{location}.options", f"must have exactly {len(OPTION_VALUES)} options, got {count}")
    missing, duplicated, out_of_range = check_option_values(values)
    for value in duplicated:
        issues.error(f"{location}.options", f"duplicate option value {value}")
    for value in missing:
        issues.error(f"{location}.options", f"missing option value {value}")
    for value in out_of_range:
        issues.error(f"{location}.options", f"option value {value!r} is not one of 0, 1, 2, 3")


def _normalize_question(index: int, raw: Any, issues: _Issues) -> dict | None:
    location = f"questions[{index}]"
    if not isinstance(raw, dict):
        issues.error(location, "must be an object")
        return None

    question_id = _required_text(raw, "id", location, issues)
    if question_id:
        location = f"questions[{question_id}]"
    text = _required_text(raw, "text", location, issues)

    options_raw = raw.get("options")
    if not isinstance(options_raw, list):
        issues.error(f"{location}.options", "must be a list")
        return None

    options: list[dict] = []
    option_ids: set[str] = set()
    values: list[Any] = []
    for j, option in enumerate(options_raw):
        opt_loc = f"{location}.options[{j}]"
        if not isinstance(option, dict):
            issues.error(opt_loc, "must be an object")
            continue
        option_id = _required_text(option, "id", opt_loc, issues)
        if option_id:
            if option_id in option_ids:
                issues.error(f"{opt_loc}.id", f"duplicate option id '{option_id}' within question")
            option_ids.add(option_id)
        label = _required_text(option, "label", opt_loc, issues)
        value = option.get("value")
        if not _is_int(value):
            issues.error(f"{opt_loc}.value", "must be an integer")
        values.append(value)
        options.append({"id": option_id, "label": label, "value": value})

    _option_issues(location, values, len(options_raw), issues)

    if question_id is None or text is None:
        return None
    options.sort(key=lambda o: o["value"] if _is_int(o["value"]) else len(OPTION_VALUES))
    return {"id": question_id, "text": text, "options": options}


def _normalize_sections(raw_sections: list, issues: _Issues) -> list[dict]:
    ordered = list(enumerate(raw_sections))
    # Either every section declares a numeric order or none does
    with_order = [(i, s) for i, s in ordered if isinstance(s, dict) and s.get("order") is not None]
    valid = True
    for index, raw in with_order:
        if not _is_number(raw["order"]):
            issues.error(f"sections[{index}].order", f"must be a number, got {raw['order']!r}")
            valid = False
    if with_order and len(with_order) != len(ordered):
        declared = {i for i, _ in with_order}
        for index, _ in ordered:
            if index not in declared:
                issues.error(f"sections[{index}].order", "required when other sections declare an order")
        valid = False
    if with_order and valid:
        ordered.sort(key=lambda pair: pair[1]["order"])

    sections: list[dict] = []
    seen: set[str] = set()
    for index, raw in ordered:
        location = f"sections[{index}]"
        if not isinstance(raw, dict):
            issues.error(location, "must be an object")
            continue
        section_id = _required_text(raw, "id", location, issues)
        if section_id:
            if section_id in seen:
                issues.error(f"{location}.id", f"duplicate section id '{section_id}'")
            seen.add(section_id)
            location = f"sections[{section_id}]"
        title = _required_text(raw, "title", location, issues)

        question_ids_raw = raw.get("questionIds")
        question_ids: list[str] = []
        if not isinstance(question_ids_raw, list) or not question_ids_raw:
            issues.error(f"{location}.questionIds", "must be a non-empty list")
        else:
            for k, qid in enumerate(question_ids_raw):
                text = _text(qid)
                if text is None:
                    issues.error(f"{location}.questionIds[{k}]", "must be a non-empty string")
                else:
                    question_ids.append(text)

        if section_id and title:
            sections.append({"id": section_id, "title": title, "questionIds": question_ids})
    return sections


def _validate_question_set(candidate: dict, config: ContentConfig, issues: _Issues) -> dict | None:
    version = candidate.get("version")
    version_text = str(version).strip() if _is_int(version) or isinstance(version, str) else None
    if version_text != config.question_schema_version:
        issues.error("version", f"must be \"{config.question_schema_version}\", got {version!r}")
    assessment_type = _required_text(candidate, "assessmentType", "", issues)

    raw_sections = candidate.get("sections")
    raw_questions = candidate.get("questions")
    if not isinstance(raw_sections, list) or not raw_sections:
        issues.error("sections", "must be a non-empty list")
        raw_sections = []
    if not isinstance(raw_questions, list) or not raw_questions:
        issues.error("questions", "must be a non-empty list")
        raw_questions = []

    sections = _normalize_sections(raw_sections, issues)

    questions: dict[str, dict] = {}
    for i, raw in enumerate(raw_questions):
        question = _normalize_question(i, raw, issues)
        if question is None:
            continue
        if question["id"] in questions:
            issues.error(f"questions[{i}].id", f"duplicate question id '{question['id']}'")
            continue
        questions[question["id"]] = question

    # Every question belongs to exactly one section
    owner: dict[str, str] = {}
    for section in sections:
        for qid in section["questionIds"]:
            if qid in owner:
                if owner[qid] == section["id"]:
                    issues.error(f"sections[{section['id']}].questionIds", f"lists question '{qid}' twice")
                else:
                    issues.error(
                        f"sections[{section['id']}].questionIds",
                        f"question '{qid}' already belongs to section '{owner[qid]}'",
                    )
                continue
            owner[qid] = section["id"]
            if qid not in questions and not any(
                isinstance(q, dict) and _text(q.get("id")) == qid for q in raw_questions
            ):
                issues.error(f"sections[{section['id']}].questionIds", f"references unknown question '{qid}'")
    for qid in questions:
        if qid not in owner:
            issues.error(f"questions[{qid}]", "is not assigned to any section")

    if issues.errors:
        return None

    ordered_questions = []
    for section in sections:
        ordered_questions.extend(questions[qid] for qid in section["questionIds"])

    normalized = {
        "version": config.question_schema_version,
        "assessmentType": assessment_type,
        "sections": sections,
        "questions": ordered_questions,
    }
    locale = _text(candidate.get("locale"))
    if locale:
        normalized["locale"] = locale
    return normalized


# ---------------------------------------------------------------------------
# Results packs
# ---------------------------------------------------------------------------


def _normalize_flow_page(name: str, raw: Any, issues: _Issues) -> dict | None:
    location = f"flow.{name}"
    if not isinstance(raw, dict):
        issues.error(location, "must be an object")
        return None
    required, optional = FLOW_PAGES[name]
    page: dict[str, Any] = {}
    for key in required:
        if key.endswith(("Bullets", "Pills")):
            value = _text_list(raw, key, location, issues)
        elif name == "page1" and key == "headline":
            # Missing page1 headline is tolerated so editors can iterate on copy
            value = _text(raw.get(key)) or _text(raw.get("title"))
            if value is None:
                issues.warn(f"{location}.headline", "headline is missing")
                continue
        else:
            value = _required_text(raw, key, location, issues)
        if value is not None:
            page[key] = value
    for key in optional:
        if key not in raw or raw[key] is None:
            continue
        value = _text(raw[key])
        if value is None:
            issues.error(f"{location}.{key}", "must be a non-empty string when present")
        else:
            page[key] = value
    return page


def _validate_results_pack(candidate: dict, config: ContentConfig, issues: _Issues) -> dict | None:
    normalized: dict[str, Any] = {}
    for key in RESULTS_REQUIRED_STRINGS:
        value = _required_text(candidate, key, "", issues)
        if value is not None:
            normalized[key] = value
    for key in RESULTS_REQUIRED_LISTS:
        value = _text_list(candidate, key, "", issues)
        if value is not None:
            normalized[key] = value

    for key in RESULTS_OPTIONAL_STRINGS:
        if candidate.get(key) is not None:
            value = _text(candidate[key])
            if value is None:
                issues.error(key, "must be a non-empty string when present")
            else:
                normalized[key] = value

    if "campaignVariantId" in candidate:
        variant = candidate["campaignVariantId"]
        if variant is not None and _text(variant) is None:
            issues.error("campaignVariantId", "must be a string or null")
        else:
            normalized["campaignVariantId"] = _text(variant)

    channels = candidate.get("channels")
    if channels is not None:
        if not isinstance(channels, dict):
            issues.error("channels", "must be an object")
        else:
            normalized_channels = {}
            for name, channel in channels.items():
                if name not in CHANNEL_NAMES:
                    issues.warn(f"channels.{name}", "unknown channel ignored")
                    continue
                if not isinstance(channel, dict) or not isinstance(channel.get("enabled"), bool):
                    issues.error(f"channels.{name}.enabled", "must be a boolean")
                    continue
                normalized_channels[name] = {"enabled": channel["enabled"]}
            normalized["channels"] = normalized_channels

    modifiers = candidate.get("secondaryModifiers")
    if modifiers is not None:
        if (
            not isinstance(modifiers, dict)
            or not isinstance(modifiers.get("enabled"), bool)
            or not isinstance(modifiers.get("items", []), list)
        ):
            issues.error("secondaryModifiers", "must be an object with boolean 'enabled' and list 'items'")
        else:
            normalized["secondaryModifiers"] = {
                "enabled": modifiers["enabled"],
                "items": list(modifiers.get("items", [])),
            }

    # The narrative flow is optional; the legacy fields above suffice without it
    flow = candidate.get("flow")
    if flow is not None:
        if not isinstance(flow, dict):
            issues.error("flow", "must be an object")
        else:
            normalized_flow = {}
            for name in FLOW_PAGES:
                if name not in flow:
                    issues.error(f"flow.{name}", "is required when flow is present")
                    continue
                page = _normalize_flow_page(name, flow[name], issues)
                if page is not None:
                    normalized_flow[name] = page
            normalized["flow"] = normalized_flow

    if issues.errors:
        return None
    return normalized


_RULES: dict[ContentKind, Callable[[dict, ContentConfig, _Issues], dict | None]] = {
    ContentKind.QUESTION_SET: _validate_question_set,
    ContentKind.RESULTS_PACK: _validate_results_pack,
}


def validate(kind: ContentKind | str, candidate: Any, config: ContentConfig | None = None) -> ValidationResult:
    """Validate and normalize a candidate document of the given kind.

    Never raises for malformed input. Returns ``ok=True`` with the canonical
    ``normalized`` document, or ``ok=False`` with every detectable error.
    Warnings never affect ``ok``.
    """
    config = config or ContentConfig()
    issues = _Issues()
    try:
        rule = _RULES[ContentKind(kind)]
    except (KeyError, ValueError):
        issues.error("kind", f"unknown content kind {kind!r}")
        return ValidationResult(ok=False, errors=issues.errors)

    if not isinstance(candidate, dict):
        issues.error("", "document must be a JSON object")
        return ValidationResult(ok=False, errors=issues.errors)

    normalized = rule(candidate, config, issues)
    if issues.errors or normalized is None:
        return ValidationResult(ok=False, errors=issues.errors, warnings=issues.warnings)
    return ValidationResult(ok=True, normalized=normalized, warnings=issues.warnings)


def sanity_check(kind: ContentKind | str, document: Any) -> bool:
    """Cheap shape check used for pinned revisions. Not a full re-validation."""
    if not isinstance(document, dict):
        return False
    if ContentKind(kind) == ContentKind.QUESTION_SET:
        return isinstance(document.get("sections"), list) and isinstance(document.get("questions"), list)
    return isinstance(document.get("label"), str) and isinstance(document.get("summary"), str)
