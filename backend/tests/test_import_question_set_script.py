"""Dry-run behaviour of scripts/import_question_set.py (no database)."""

import pytest

from scripts.import_question_set import main

pytestmark = pytest.mark.unit

TABLES = {
    "meta.csv": "key,value\nversion,2\nassessmentType,gut-check\nassessmentVersion,2\n",
    "sections.csv": "section_id,title,order\ns1,Energy,1\n",
    "questions.csv": "question_id,section_id,text,order\nQ1,s1,How often do you feel rushed?,1\n",
    "options.csv": "question_id,option_id,label,value\nQ1,a,Never,0\nQ1,b,Sometimes,1\nQ1,c,Often,2\nQ1,d,Always,3\n",
}


def _write(directory, tables):
    for name, text in tables.items():
        (directory / name).write_text(text, encoding="utf-8")


async def test_dry_run_prints_document_and_hash(tmp_path, capsys):
    _write(tmp_path, TABLES)

    assert await main([str(tmp_path), "--dry-run"]) == 0

    out = capsys.readouterr().out
    assert '"assessmentType": "gut-check"' in out
    assert "content_hash:" in out


async def test_dry_run_lists_every_error(tmp_path, capsys):
    _write(tmp_path, dict(TABLES, **{"options.csv": TABLES["options.csv"].replace("Often,2", "Often,1")}))

    assert await main([str(tmp_path), "--dry-run"]) == 1

    out = capsys.readouterr().out
    assert "options.csv row 4, column value: question 'Q1' has duplicate value 1" in out


async def test_missing_tables(tmp_path, capsys):
    assert await main([str(tmp_path), "--dry-run"]) == 2
    assert "Cannot read tables" in capsys.readouterr().out
