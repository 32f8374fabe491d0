"""Shared test fixtures for all test groups."""

import pytest

from app.domain.config import ContentConfig
from app.services.content_admin_service import ContentAdminService
from app.store.memory import InMemoryContentRepository


@pytest.fixture
def config():
    """Pure defaults: schema "2", two insert attempts, editor/admin privileged."""
    return ContentConfig()


@pytest.fixture
def repo():
    """Fresh in-memory repository."""
    return InMemoryContentRepository()


@pytest.fixture
def admin(repo, config):
    return ContentAdminService(repo, config)


@pytest.fixture
def question_set_doc():
    """Valid two-section question set with deliberately unsorted options."""
    return {
        "version": "2",
        "assessmentType": "gut-check",
        "sections": [
            {"id": "s1", "title": "Energy", "questionIds": ["Q1"]},
            {"id": "s2", "title": "Focus", "questionIds": ["Q2"]},
        ],
        "questions": [
            {
                "id": "Q1",
                "text": "How often do you feel rushed?",
                "options": [
                    {"id": "Q1_d", "label": "Almost always", "value": 3},
                    {"id": "Q1_a", "label": "Never", "value": 0},
                    {"id": "Q1_b", "label": "Sometimes", "value": 1},
                    {"id": "Q1_c", "label": "Often", "value": 2},
                ],
            },
            {
                "id": "Q2",
                "text": "How often do you lose track of priorities?",
                "options": [
                    {"id": "Q2_a", "label": "Never", "value": 0},
                    {"id": "Q2_b", "label": "Sometimes", "value": 1},
                    {"id": "Q2_c", "label": "Often", "value": 2},
                    {"id": "Q2_d", "label": "Almost always", "value": 3},
                ],
            },
        ],
    }


@pytest.fixture
def results_pack_doc():
    """Valid results pack with only the legacy required fields."""
    return {
        "label": "Steady Base",
        "summary": "You keep a calm baseline most weeks.",
        "methodPositioning": "The method helps you protect it.",
        "keyPatterns": ["You plan ahead", "You recover quickly"],
        "firstFocusAreas": ["Keep the morning routine"],
    }
