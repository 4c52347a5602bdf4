"""
Shared fixtures for diagnostic flow tests.

Flows are written as the camelCase documents the catalog loads from disk.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from diagnosis.flow.engine import DiagnosticEngine
from diagnosis.flow.models import QuestionTree

FLOWS_DIR = Path(__file__).resolve().parent.parent / "flows"


def leak_flow_document(with_diy: bool = True) -> dict:
    """Q1 'Is water leaking?' yes->Q2, no->terminal; Q2 pipe=urgent, fixture=routine."""
    return {
        "serviceCategory": "Plumbing",
        "problemName": "Water Leak",
        "questions": [
            {
                "id": "Q1",
                "question": "Is water leaking?",
                "type": "yes-no",
                "required": True,
                "options": [
                    {"value": "yes", "label": "Yes", "nextQuestionId": "Q2", "severity": "high"},
                    {"value": "no", "label": "No", "isDIYCandidate": True, "severity": "low"},
                ],
            },
            {
                "id": "Q2",
                "question": "From pipe or fixture?",
                "type": "single-choice",
                "options": [
                    {"value": "pipe", "label": "Pipe"},
                    {"value": "fixture", "label": "Fixture", "isDIYCandidate": True},
                ],
            },
        ],
        "diySolutions": (
            [
                {
                    "condition": {"Q1": "no"},
                    "title": "Tighten the drip",
                    "steps": ["Find the drip", "Tighten the fitting"],
                    "difficulty": "easy",
                    "safetyWarnings": ["Turn the water off first"],
                }
            ]
            if with_diy
            else []
        ),
        "technicianPreparation": {
            "likelyCauses": ["Cracked supply line"],
            "toolsNeeded": ["Pipe wrench"],
            "commonParts": ["Compression fitting"],
            "estimatedJobDuration": "2 hours",
            "complexity": "moderate",
        },
        "urgencyIndicators": [
            {"questionId": "Q2", "answerValue": "pipe", "urgency": "urgent"},
            {"questionId": "Q2", "answerValue": "fixture", "urgency": "routine"},
        ],
    }


def branching_flow_document() -> dict:
    """A multiple-choice root whose options branch to different follow-ups."""
    return {
        "serviceCategory": "General",
        "problemName": "Mixed Symptoms",
        "questions": [
            {
                "id": "Q1",
                "question": "What do you notice?",
                "type": "multiple-choice",
                "allowsMultiple": True,
                "options": [
                    {"value": "a", "label": "A", "severity": "low", "nextQuestionId": "Q2", "isDIYCandidate": True},
                    {"value": "b", "label": "B", "severity": "high", "nextQuestionId": "Q3"},
                    {"value": "c", "label": "C", "severity": "high", "nextQuestionId": "Q4"},
                    {"value": "d", "label": "D", "isDIYCandidate": True},
                ],
            },
            {"id": "Q2", "question": "Follow-up A", "type": "yes-no",
             "options": [{"value": "yes", "isDIYCandidate": True}, {"value": "no"}]},
            {"id": "Q3", "question": "Follow-up B", "type": "yes-no",
             "options": [{"value": "yes"}, {"value": "no"}]},
            {"id": "Q4", "question": "Follow-up C", "type": "yes-no",
             "options": [{"value": "yes"}, {"value": "no"}]},
        ],
        "diySolutions": [
            {"condition": {"Q1": ["a", "d"]}, "title": "Handle A and D"},
            {"condition": {"Q1": "d"}, "title": "Handle D"},
        ],
        "urgencyIndicators": [
            {"questionId": "Q1", "answerValue": "b", "urgency": "urgent"},
        ],
    }


@pytest.fixture
def engine():
    return DiagnosticEngine()


@pytest.fixture
def leak_tree():
    return QuestionTree.model_validate(leak_flow_document())


@pytest.fixture
def leak_tree_without_diy():
    return QuestionTree.model_validate(leak_flow_document(with_diy=False))


@pytest.fixture
def branching_tree():
    return QuestionTree.model_validate(branching_flow_document())


@pytest.fixture(scope="session")
def flows_dir():
    return FLOWS_DIR


@pytest.fixture
def leak_document():
    return leak_flow_document()


@pytest.fixture
def branching_document():
    return branching_flow_document()


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()
