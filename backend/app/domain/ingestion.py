"""Tabular ingestion: four CSV tables to one question set document.

Pure except for CSV parsing. The tables are:

    meta.csv       key,value
    sections.csv   section_id,title,order
    questions.csv  question_id,section_id,text,order
    options.csv    question_id,option_id,label,value

Every stage aggregates its problems into ``TabularIssue`` records carrying
the table name, the 1-based row number (the header is row 1) and the column.
A human fixing a spreadsheet wants the whole list, so nothing stops at the
first error. The assembled document is finally passed through the validator.
"""

import csv
import io
from dataclasses import dataclass, field
from typing import Any

from app.domain.config import ContentConfig
from app.domain.content import ContentKind
from app.domain.validation import OPTION_VALUES, check_option_values, validate

META_TABLE = "meta.csv"
SECTIONS_TABLE = "sections.csv"
QUESTIONS_TABLE = "questions.csv"
OPTIONS_TABLE = "options.csv"

META_HEADERS = ("key", "value")
SECTION_HEADERS = ("section_id", "title", "order")
QUESTION_HEADERS = ("question_id", "section_id", "text", "order")
OPTION_HEADERS = ("question_id", "option_id", "label", "value")

TABLE_HEADERS: dict[str, tuple[str, ...]] = {
    META_TABLE: META_HEADERS,
    SECTIONS_TABLE: SECTION_HEADERS,
    QUESTIONS_TABLE: QUESTION_HEADERS,
    OPTIONS_TABLE: OPTION_HEADERS,
}

REQUIRED_META_KEYS = ("version", "assessmentType", "assessmentVersion")


@dataclass(frozen=True)
class TabularIssue:
    table: str
    row: int
    message: str
    column: str | None = None

    @property
    def location(self) -> str:
        where = f"{self.table} row {self.row}"
        return f"{where}, column {self.column}" if self.column else where

    def __str__(self) -> str:
        return f"{self.location}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "row": self.row,
            "column": self.column,
            "location": self.location,
            "message": self.message,
        }


@dataclass(frozen=True)
class TableRow:
    """One parsed data row. ``number`` is the 1-based line in the source table."""

    number: int
    values: dict[str, str]

    def get(self, column: str) -> str:
        return self.values.get(column, "").strip()


@dataclass
class IngestionResult:
    document: dict | None = None
    errors: list = field(default_factory=list)
    warnings: list = field(default_factory=list)
    metadata: dict[str, str | None] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.document is not None and not self.errors


def parse_table(text: str, table: str, expected_headers: tuple[str, ...] | None = None) -> tuple[list[TableRow], list[TabularIssue]]:
    """Parse delimited text into rows checked against the expected header set.

    Blank lines are skipped. A header mismatch stops parsing of that table; a
    malformed data row is reported and skipped.
    """
    expected = tuple(expected_headers or TABLE_HEADERS[table])
    rows: list[TableRow] = []
    issues: list[TabularIssue] = []

    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    header: list[str] | None = None
    try:
        for record in reader:
            if not any(cell.strip() for cell in record):
                continue
            line = reader.line_num
            if header is None:
                header = [cell.strip() for cell in record]
                if len(header) != len(expected):
                    issues.append(TabularIssue(table, line, f"expected {len(expected)} columns, got {len(header)}"))
                    return [], issues
                for position, (got, want) in enumerate(zip(header, expected)):
                    if got != want:
                        issues.append(TabularIssue(
                            table, line, f"header mismatch at position {position + 1}: expected '{want}', got '{got}'", want,
                        ))
                if issues:
                    return [], issues
                continue
            if len(record) != len(expected):
                issues.append(TabularIssue(table, line, f"row has {len(record)} columns, expected {len(expected)}"))
                continue
            rows.append(TableRow(number=line, values={k: v.strip() for k, v in zip(expected, record)}))
    except csv.Error as exc:
        issues.append(TabularIssue(table, reader.line_num, f"malformed CSV: {exc}"))

    if header is None:
        issues.append(TabularIssue(table, 0, "table is empty"))
    return rows, issues


def _parse_order(raw: str) -> float | None:
    try:
        value = float(raw)
    except ValueError:
        return None
    if value != value or value in (float("inf"), float("-inf")):
        return None
    return value


def _parse_option_value(raw: str) -> int | None:
    try:
        return int(raw)
    except ValueError:
        return None


def _read_meta(meta_rows: list[TableRow], config: ContentConfig, errors: list[TabularIssue]) -> dict[str, str | None]:
    if not meta_rows:
        errors.append(TabularIssue(META_TABLE, 0, "must have at least one data row"))
        return {}

    meta: dict[str, str] = {}
    rows_by_key: dict[str, int] = {}
    for row in meta_rows:
        key = row.get("key")
        if not key:
            continue
        if key in meta:
            errors.append(TabularIssue(META_TABLE, row.number, f"duplicate key '{key}'", "key"))
            continue
        meta[key] = row.get("value")
        rows_by_key[key] = row.number

    first_row = meta_rows[0].number
    version = meta.get("version")
    if version != config.question_schema_version:
        errors.append(TabularIssue(
            META_TABLE,
            rows_by_key.get("version", first_row),
            f"version must be \"{config.question_schema_version}\", got \"{version or 'empty'}\"",
            "value",
        ))
    for key in REQUIRED_META_KEYS[1:]:
        if not meta.get(key):
            errors.append(TabularIssue(META_TABLE, rows_by_key.get(key, first_row), f"{key} is required", "value"))

    return {
        "version": version,
        "assessment_type": meta.get("assessmentType") or None,
        "assessment_version": meta.get("assessmentVersion") or None,
        "locale": meta.get("locale") or None,
        "notes": meta.get("notes") or None,
    }


def build_question_set(
    meta_rows: list[TableRow],
    section_rows: list[TableRow],
    question_rows: list[TableRow],
    option_rows: list[TableRow],
    config: ContentConfig | None = None,
) -> IngestionResult:
    """Cross-validate parsed tables and assemble the question set document."""
    config = config or ContentConfig()
    errors: list[TabularIssue] = []

    metadata = _read_meta(meta_rows, config, errors)

    # Sections, sorted by numeric order. Ids with a bad order still count for references.
    known_sections: set[str] = set()
    sections: list[tuple[float, int, str, str]] = []
    for row in section_rows:
        section_id = row.get("section_id")
        title = row.get("title")
        if not section_id:
            errors.append(TabularIssue(SECTIONS_TABLE, row.number, "section_id is required", "section_id"))
            continue
        if section_id in known_sections:
            errors.append(TabularIssue(SECTIONS_TABLE, row.number, f"duplicate section_id '{section_id}'", "section_id"))
            continue
        known_sections.add(section_id)
        if not title:
            errors.append(TabularIssue(SECTIONS_TABLE, row.number, "title is required", "title"))
        order = _parse_order(row.get("order"))
        if order is None:
            errors.append(TabularIssue(SECTIONS_TABLE, row.number, f"order must be numeric, got \"{row.get('order')}\"", "order"))
            continue
        sections.append((order, row.number, section_id, title))
    sections.sort()
    if not section_rows:
        errors.append(TabularIssue(SECTIONS_TABLE, 0, "must have at least one data row"))

    # Questions, grouped by owning section and sorted within it
    known_questions: set[str] = set()
    question_text: dict[str, str] = {}
    by_section: dict[str, list[tuple[float, int, str]]] = {}
    for row in question_rows:
        question_id = row.get("question_id")
        section_id = row.get("section_id")
        if not question_id:
            errors.append(TabularIssue(QUESTIONS_TABLE, row.number, "question_id is required", "question_id"))
            continue
        if question_id in known_questions:
            errors.append(TabularIssue(QUESTIONS_TABLE, row.number, f"duplicate question_id '{question_id}'", "question_id"))
            continue
        known_questions.add(question_id)
        if not row.get("text"):
            errors.append(TabularIssue(QUESTIONS_TABLE, row.number, "text is required", "text"))
        order = _parse_order(row.get("order"))
        if order is None:
            errors.append(TabularIssue(QUESTIONS_TABLE, row.number, f"order must be numeric, got \"{row.get('order')}\"", "order"))
        if section_id not in known_sections:
            errors.append(TabularIssue(
                QUESTIONS_TABLE, row.number, f"section_id '{section_id}' does not exist in {SECTIONS_TABLE}", "section_id",
            ))
            continue
        if order is None:
            continue
        question_text[question_id] = row.get("text")
        by_section.setdefault(section_id, []).append((order, row.number, question_id))
    for entries in by_section.values():
        entries.sort()
    if not question_rows:
        errors.append(TabularIssue(QUESTIONS_TABLE, 0, "must have at least one data row"))

    # Options, grouped by owning question
    options_by_question: dict[str, list[tuple[TableRow, int | None]]] = {}
    for row in option_rows:
        question_id = row.get("question_id")
        raw_value = row.get("value")
        value = _parse_option_value(raw_value)
        if value is None:
            errors.append(TabularIssue(OPTIONS_TABLE, row.number, f"value must be an integer, got \"{raw_value}\"", "value"))
        elif value not in OPTION_VALUES:
            errors.append(TabularIssue(OPTIONS_TABLE, row.number, f"value must be one of 0, 1, 2, 3, got {value}", "value"))
        if not row.get("option_id"):
            errors.append(TabularIssue(OPTIONS_TABLE, row.number, "option_id is required", "option_id"))
        if not row.get("label"):
            errors.append(TabularIssue(OPTIONS_TABLE, row.number, "label is required", "label"))
        if question_id not in known_questions:
            errors.append(TabularIssue(
                OPTIONS_TABLE, row.number, f"question_id '{question_id}' does not exist in {QUESTIONS_TABLE}", "question_id",
            ))
            continue
        options_by_question.setdefault(question_id, []).append((row, value))

    for question_id in sorted(known_questions - options_by_question.keys()):
        errors.append(TabularIssue(OPTIONS_TABLE, 0, f"question '{question_id}' has no options", "question_id"))

    for question_id, entries in options_by_question.items():
        first_row = entries[0][0].number
        if len(entries) != len(OPTION_VALUES):
            errors.append(TabularIssue(
                OPTIONS_TABLE, first_row,
                f"question '{question_id}' must have exactly {len(OPTION_VALUES)} options, got {len(entries)}",
                "question_id",
            ))
        seen_ids: set[str] = set()
        for row, _ in entries:
            option_id = row.get("option_id")
            if option_id and option_id in seen_ids:
                errors.append(TabularIssue(
                    OPTIONS_TABLE, row.number, f"duplicate option_id '{option_id}' within question '{question_id}'", "option_id",
                ))
            seen_ids.add(option_id)

        values = [value for _, value in entries if value is not None and value in OPTION_VALUES]
        missing, duplicated, _ = check_option_values(values)
        for dup in duplicated:
            second = [row.number for row, value in entries if value == dup][1]
            errors.append(TabularIssue(
                OPTIONS_TABLE, second, f"question '{question_id}' has duplicate value {dup}", "value",
            ))
        for value in missing:
            errors.append(TabularIssue(
                OPTIONS_TABLE, first_row, f"question '{question_id}' is missing option with value {value}", "value",
            ))

    for _, number, section_id, _ in sections:
        if section_id not in by_section:
            errors.append(TabularIssue(SECTIONS_TABLE, number, f"section '{section_id}' has no questions", "section_id"))

    if errors:
        return IngestionResult(errors=errors, metadata=metadata)

    document = {
        "version": config.question_schema_version,
        "assessmentType": metadata["assessment_type"],
        "sections": [
            {"id": section_id, "title": title, "questionIds": [qid for _, _, qid in by_section[section_id]]}
            for _, _, section_id, title in sections
        ],
        "questions": [
            {
                "id": qid,
                "text": question_text[qid],
                "options": [
                    {"id": row.get("option_id"), "label": row.get("label"), "value": value}
                    for row, value in sorted(options_by_question[qid], key=lambda entry: entry[1])
                ],
            }
            for _, _, section_id, _ in sections
            for _, _, qid in by_section[section_id]
        ],
    }
    if metadata.get("locale"):
        document["locale"] = metadata["locale"]

    # Final structural check through the shared validator
    result = validate(ContentKind.QUESTION_SET, document, config)
    if not result.ok:
        return IngestionResult(errors=list(result.errors), warnings=list(result.warnings), metadata=metadata)
    return IngestionResult(document=result.normalized, warnings=list(result.warnings), metadata=metadata)


def ingest_tables(
    meta_text: str,
    sections_text: str,
    questions_text: str,
    options_text: str,
    config: ContentConfig | None = None,
) -> IngestionResult:
    """Parse the four raw tables and build the document, aggregating every issue."""
    parse_errors: list[TabularIssue] = []
    parsed: dict[str, list[TableRow]] = {}
    for table, text in (
        (META_TABLE, meta_text),
        (SECTIONS_TABLE, sections_text),
        (QUESTIONS_TABLE, questions_text),
        (OPTIONS_TABLE, options_text),
    ):
        rows, issues = parse_table(text, table)
        parsed[table] = rows
        parse_errors.extend(issues)

    result = build_question_set(
        parsed[META_TABLE],
        parsed[SECTIONS_TABLE],
        parsed[QUESTIONS_TABLE],
        parsed[OPTIONS_TABLE],
        config,
    )
    if parse_errors:
        return IngestionResult(errors=parse_errors + result.errors, warnings=result.warnings, metadata=result.metadata)
    return result
