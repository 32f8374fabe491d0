"""Tests for the four-table question set ingestion pipeline.

Verifies:
- A clean set of tables yields the same canonical document as the validator
- Every problem is reported with table, row and column
- Header and column-count checks
- Duplicate option values name the offending row
"""

import pytest

from app.domain.content import ContentKind
from app.domain.ingestion import (
    META_TABLE,
    OPTIONS_TABLE,
    QUESTIONS_TABLE,
    SECTIONS_TABLE,
    TabularIssue,
    ingest_tables,
    parse_table,
)
from app.domain.validation import validate

pytestmark = pytest.mark.unit

META = """key,value
version,2
assessmentType,gut-check
assessmentVersion,2
notes,Spring copy refresh
"""

SECTIONS = """section_id,title,order
s2,Focus,2
s1,Energy,1
"""

QUESTIONS = """question_id,section_id,text,order
Q2,s2,How often do you lose track of priorities?,1
Q1,s1,How often do you feel rushed?,1
"""


def _options(q1_values=(0, 1, 2, 3)):
    labels = ["Never", "Sometimes", "Often", "Almost always"]
    lines = ["question_id,option_id,label,value"]
    for suffix, label, value in zip("abcd", labels, q1_values):
        lines.append(f"Q1,Q1_{suffix},{label},{value}")
    for suffix, label, value in zip("abcd", labels, (0, 1, 2, 3)):
        lines.append(f"Q2,Q2_{suffix},{label},{value}")
    return "\n".join(lines) + "\n"


def _issues_for(result, table):
    return [e for e in result.errors if isinstance(e, TabularIssue) and e.table == table]


def test_clean_tables_produce_normalized_document(question_set_doc):
    result = ingest_tables(META, SECTIONS, QUESTIONS, _options())

    assert result.ok, [str(e) for e in result.errors]
    assert [s["id"] for s in result.document["sections"]] == ["s1", "s2"]
    assert result.document == validate(ContentKind.QUESTION_SET, question_set_doc).normalized


def test_metadata_is_extracted():
    result = ingest_tables(META, SECTIONS, QUESTIONS, _options())
    assert result.metadata["assessment_type"] == "gut-check"
    assert result.metadata["assessment_version"] == "2"
    assert result.metadata["locale"] is None
    assert result.metadata["notes"] == "Spring copy refresh"


def test_locale_from_meta_lands_in_document():
    meta = META + "locale,de-DE\n"
    result = ingest_tables(meta, SECTIONS, QUESTIONS, _options())
    assert result.ok
    assert result.document["locale"] == "de-DE"


def test_duplicate_option_value_is_reported_on_its_row():
    """Q1 declared with values 0, 1, 1, 3."""
    result = ingest_tables(META, SECTIONS, QUESTIONS, _options((0, 1, 1, 3)))

    assert not result.ok
    assert result.document is None
    issues = _issues_for(result, OPTIONS_TABLE)
    duplicate = [i for i in issues if i.message == "question 'Q1' has duplicate value 1"]
    assert len(duplicate) == 1
    # Header is row 1; the second "1" is on row 4
    assert duplicate[0].row == 4
    assert duplicate[0].column == "value"
    assert any(i.message == "question 'Q1' is missing option with value 2" for i in issues)


def test_all_errors_are_aggregated():
    sections = "section_id,title,order\ns1,Energy,first\ns2,,2\n"
    questions = "question_id,section_id,text,order\nQ1,s1,Text,1\nQ2,s9,Text,1\n"

    result = ingest_tables("key,value\nversion,1\n", sections, questions, _options((0, 1, 1, 3)))

    tables = {e.table for e in result.errors}
    assert {META_TABLE, SECTIONS_TABLE, QUESTIONS_TABLE, OPTIONS_TABLE} <= tables
    messages = [str(e) for e in result.errors]
    assert any('version must be "2", got "1"' in m for m in messages)
    assert any("assessmentType is required" in m for m in messages)
    assert any('order must be numeric, got "first"' in m for m in messages)
    assert any("title is required" in m for m in messages)
    assert any("section_id 's9' does not exist" in m for m in messages)


def test_options_for_unknown_question():
    options = _options() + "Q7,Q7_a,Never,0\n"
    result = ingest_tables(META, SECTIONS, QUESTIONS, options)
    issues = _issues_for(result, OPTIONS_TABLE)
    assert [i.row for i in issues if "question_id 'Q7' does not exist" in i.message] == [10]


def test_question_without_options():
    questions = QUESTIONS + "Q3,s1,Extra,2\n"
    result = ingest_tables(META, SECTIONS, questions, _options())
    assert any(i.message == "question 'Q3' has no options" for i in _issues_for(result, OPTIONS_TABLE))


def test_section_without_questions():
    sections = SECTIONS + "s3,Empty,3\n"
    result = ingest_tables(META, sections, QUESTIONS, _options())
    issues = _issues_for(result, SECTIONS_TABLE)
    assert [(i.row, i.message) for i in issues] == [(4, "section 's3' has no questions")]


def test_duplicate_question_id():
    questions = QUESTIONS + "Q1,s2,Again,2\n"
    result = ingest_tables(META, SECTIONS, questions, _options())
    assert any(i.message == "duplicate question_id 'Q1'" and i.row == 4 for i in _issues_for(result, QUESTIONS_TABLE))


def test_non_integer_option_value():
    options = _options().replace("Q2,Q2_d,Almost always,3", "Q2,Q2_d,Almost always,three")
    result = ingest_tables(META, SECTIONS, QUESTIONS, options)
    assert any(i.message == 'value must be an integer, got "three"' for i in _issues_for(result, OPTIONS_TABLE))


def test_parse_table_header_mismatch():
    rows, issues = parse_table("section,title,order\ns1,Energy,1\n", SECTIONS_TABLE)
    assert rows == []
    assert issues[0].row == 1
    assert "expected 'section_id', got 'section'" in issues[0].message


def test_parse_table_column_count():
    rows, issues = parse_table("section_id,title,order\ns1,Energy\ns2,Focus,2\n", SECTIONS_TABLE)
    assert [r.get("section_id") for r in rows] == ["s2"]
    assert issues[0].row == 2
    assert issues[0].location == "sections.csv row 2"


def test_parse_table_skips_blank_lines_and_bom():
    text = "\ufeffsection_id,title,order\n\ns1, Energy ,1\n"
    rows, issues = parse_table(text, SECTIONS_TABLE)
    assert issues == []
    assert rows[0].number == 3
    assert rows[0].get("title") == "Energy"


def test_parse_table_empty():
    rows, issues = parse_table("", META_TABLE)
    assert rows == []
    assert issues[0].message == "table is empty"


def test_issue_location_and_dict():
    issue = TabularIssue(META_TABLE, 3, "bad", "value")
    assert issue.location == "meta.csv row 3, column value"
    assert str(issue) == "meta.csv row 3, column value: bad"
    assert issue.to_dict()["column"] == "value"
