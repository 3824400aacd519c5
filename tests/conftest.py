"""
RoleFit Test Configuration - Shared Fixtures

Provides a fast config, in-memory gateways and a fresh state machine.
"""
import asyncio
from typing import Dict, List, Optional

import pytest

from rolefit.models import AssessmentConfig, PrimaryCategory, Question
from rolefit.state_manager import SessionStateMachine

TECHNICAL = PrimaryCategory.TECHNICAL.value

QUESTION_JSON = (
    '{"text":"Describe a debugging approach",'
    '"primaryCategory":"Technical or role-specific skills",'
    '"options":["A","B","C","D"]}'
)


def make_question(number: int, options: Optional[List[str]] = None) -> Question:
    return Question(
        id=f"q{number}",
        text=f"Question {number}",
        primary_category=TECHNICAL,
        options=list(options) if options is not None else ["A", "B", "C", "D", "Other"],
    )


class StubQuestionGateway:
    """Records calls and returns numbered questions."""

    def __init__(self):
        self.calls: List[Dict] = []
        self.options: Optional[List[str]] = None
        self.fail_with: Optional[Exception] = None
        self.release: Optional[asyncio.Event] = None

    async def generate_question(self, selected_categories, previous_questions, previous_answers, question_number):
        self.calls.append({
            "selected_categories": selected_categories,
            "previous_questions": previous_questions,
            "previous_answers": previous_answers,
            "question_number": question_number,
        })
        if self.release is not None:
            await self.release.wait()
        if self.fail_with is not None:
            raise self.fail_with
        return make_question(question_number, self.options)


class StubSuggestionGateway:
    """Echoes the input back as six suggestions, optionally after a delay."""

    def __init__(self, delays: Optional[Dict[str, float]] = None):
        self.calls: List[tuple] = []
        self.delays = delays or {}
        self.fail_with: Optional[Exception] = None

    async def generate_suggestions(self, question_text, user_input):
        self.calls.append((question_text, user_input))
        await asyncio.sleep(self.delays.get(user_input, 0))
        if self.fail_with is not None:
            raise self.fail_with
        return [f"{user_input} {i}" for i in range(6)]


@pytest.fixture
def config():
    """Config with a short quiet period so debounce tests stay fast."""
    return AssessmentConfig(suggestion_debounce_seconds=0.01)


@pytest.fixture
def question_gateway():
    return StubQuestionGateway()


@pytest.fixture
def suggestion_gateway():
    return StubSuggestionGateway()


@pytest.fixture
def machine(question_gateway, suggestion_gateway, config):
    return SessionStateMachine(question_gateway, suggestion_gateway, config)
