"""Tests for the bundled file fallback loader."""

import json

import pytest

from app.core.exceptions import ContentNotConfiguredError
from app.domain.config import ContentConfig
from app.domain.content import QuestionSetKey, ResultsPackKey
from app.domain.hashing import content_hash
from app.services.fallback import BUNDLED_FALLBACK_DIR, FileFallbackLoader

pytestmark = pytest.mark.unit


def _loader(tmp_path, files):
    config = ContentConfig(fallback_dir=str(tmp_path), fallback_files=files)
    return FileFallbackLoader(config)


def test_bundled_directory_is_default():
    loader = FileFallbackLoader()
    assert loader.base_dir == BUNDLED_FALLBACK_DIR
    assert loader.path_for(QuestionSetKey("gut-check", "v2")).name == "questions_v2.json"


@pytest.mark.parametrize("level", ["level1", "level2", "level3", "level4"])
@pytest.mark.parametrize("version", ["1", "2"])
def test_bundled_results_packs_are_valid(version, level):
    fallback = FileFallbackLoader().load(ResultsPackKey("gut-check", version, level))
    assert fallback.document["label"]
    assert fallback.content_hash == content_hash(fallback.document)


def test_bundled_question_set_serves_any_locale():
    loader = FileFallbackLoader()
    default = loader.load(QuestionSetKey("gut-check", "2"))
    localized = loader.load(QuestionSetKey("gut-check", "2", "fr-FR"))
    assert default.document == localized.document


def test_unregistered_descriptor(tmp_path):
    with pytest.raises(ContentNotConfiguredError) as exc_info:
        _loader(tmp_path, {}).load(QuestionSetKey("gut-check", "2"))
    assert exc_info.value.reason == "no bundled fallback registered"


def test_missing_file(tmp_path):
    loader = _loader(tmp_path, {("question_set", "gut-check", "2"): "absent.json"})
    with pytest.raises(ContentNotConfiguredError) as exc_info:
        loader.load(QuestionSetKey("gut-check", "2"))
    assert exc_info.value.reason == "bundled fallback is unreadable"


def test_malformed_json(tmp_path):
    (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
    loader = _loader(tmp_path, {("question_set", "gut-check", "2"): "broken.json"})
    with pytest.raises(ContentNotConfiguredError):
        loader.load(QuestionSetKey("gut-check", "2"))


def test_missing_level(tmp_path, results_pack_doc):
    (tmp_path / "results.json").write_text(json.dumps({"packs": {"level1": results_pack_doc}}), encoding="utf-8")
    loader = _loader(tmp_path, {("results_pack", "gut-check", "2"): "results.json"})

    assert loader.load(ResultsPackKey("gut-check", "2", "level1")).document["label"] == "Steady Base"
    with pytest.raises(ContentNotConfiguredError) as exc_info:
        loader.load(ResultsPackKey("gut-check", "2", "level2"))
    assert "level2" in exc_info.value.reason


def test_invalid_document(tmp_path, question_set_doc):
    question_set_doc["questions"][0]["options"].pop()
    (tmp_path / "qs.json").write_text(json.dumps(question_set_doc), encoding="utf-8")
    loader = _loader(tmp_path, {("question_set", "gut-check", "2"): "qs.json"})
    with pytest.raises(ContentNotConfiguredError) as exc_info:
        loader.load(QuestionSetKey("gut-check", "2"))
    assert exc_info.value.reason == "bundled fallback fails validation"


def test_question_set_for_another_assessment(tmp_path, question_set_doc):
    (tmp_path / "qs.json").write_text(json.dumps(question_set_doc), encoding="utf-8")
    loader = _loader(tmp_path, {("question_set", "deep-dive", "2"): "qs.json"})
    with pytest.raises(ContentNotConfiguredError) as exc_info:
        loader.load(QuestionSetKey("deep-dive", "2"))
    assert exc_info.value.reason == "bundled fallback is for another assessment type"


def test_files_are_reread_on_every_load(tmp_path, results_pack_doc):
    path = tmp_path / "results.json"
    path.write_text(json.dumps({"packs": {"level1": results_pack_doc}}), encoding="utf-8")
    loader = _loader(tmp_path, {("results_pack", "gut-check", "2"): "results.json"})
    key = ResultsPackKey("gut-check", "2", "level1")
    first = loader.load(key)

    path.write_text(json.dumps({"packs": {"level1": dict(results_pack_doc, label="Changed")}}), encoding="utf-8")

    assert loader.load(key).document["label"] == "Changed"
    assert loader.load(key).content_hash != first.content_hash
