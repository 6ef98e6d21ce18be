"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import random
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from studyloop.api.study_service import parse_set_for_play  # noqa: E402
from studyloop.items.content import StudyItemPlay  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def rng():
    """Deterministic shuffling."""
    return random.Random(1234)


@pytest.fixture
def flashcard_data():
    return {
        "id": "item-flash",
        "type": "flashcard",
        "position": 0,
        "study_data": {"box_level": 2, "is_due": True},
        "content": {
            "front": "What is the powerhouse of the cell?",
            "back": "Mitochondria",
            "explanation": "Produces ATP",
        },
    }


@pytest.fixture
def quiz_data():
    return {
        "id": "item-quiz",
        "type": "quiz_question",
        "position": 1,
        "content": {
            "question": "Which planet is largest?",
            "options": [
                {"id": 1, "text": "Mars"},
                {"id": 2, "text": "Jupiter"},
                {"id": 3, "text": "Venus"},
                {"id": 4, "text": "Mercury"},
            ],
            "correct_option_id": 2,
        },
    }


@pytest.fixture
def checkbox_data():
    return {
        "id": "item-check",
        "type": "checkbox_question",
        "position": 2,
        "content": {
            "question": "Which are primary colors?",
            "options": [
                {"id": 10, "text": "Red"},
                {"id": 11, "text": "Green"},
                {"id": 12, "text": "Blue"},
                {"id": 13, "text": "Yellow"},
            ],
            "correct_option_ids": [10, 12, 13],
        },
    }


@pytest.fixture
def written_data():
    return {
        "id": "item-written",
        "type": "written_answer",
        "position": 3,
        "content": {
            "question": "Capital of France?",
            "accepted_answers": ["Paris", "Paris, France"],
        },
    }


@pytest.fixture
def matching_data():
    return {
        "id": "item-match",
        "type": "matching_pairs",
        "position": 4,
        "content": {
            "pairs": [
                {"left": "H2O", "right": "Water"},
                {"left": "NaCl", "right": "Salt"},
                {"left": "CO2", "right": "Carbon dioxide"},
            ],
        },
    }


@pytest.fixture
def order_data():
    return {
        "id": "item-order",
        "type": "order_sequence",
        "position": 5,
        "content": {
            "question": "Order the planets from the sun",
            "items": [{"text": "Mercury"}, {"text": "Venus"}, {"text": "Earth"}, {"text": "Mars"}],
        },
    }


@pytest.fixture
def note_data():
    return {
        "id": "item-note",
        "type": "note",
        "position": 6,
        "study_data": None,
        "content": {"title": "Summary", "markdown": "# Planets\n\nThere are eight."},
    }


@pytest.fixture
def make_item():
    """Build a StudyItemPlay from raw JSON."""
    return StudyItemPlay.model_validate


@pytest.fixture
def set_payload(flashcard_data, quiz_data, checkbox_data, written_data, matching_data, order_data, note_data):
    """Raw c_get_set_for_play response with one item of every type (out of position order)."""
    return {
        "set": {
            "id": "set-001",
            "title": "Science Basics",
            "subject": "Science",
            "emoji": "🔬",
            "average_rating": 4.5,
            "total_ratings": 12,
        },
        "items": [note_data, quiz_data, flashcard_data, checkbox_data, written_data, matching_data, order_data],
    }


@pytest.fixture
def study_set(set_payload):
    """Parsed playable set."""
    return parse_set_for_play(set_payload)
