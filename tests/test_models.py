import os

import pytest

from conftest import make_question
from rolefit.models import AssessmentConfig, AssessmentSession, PrimaryCategory, Question


class TestAssessmentConfig:

    def test_from_env_overrides(self, monkeypatch):
        monkeypatch.setenv("ROLEFIT_QUESTION_MODEL", "gpt-4o")
        monkeypatch.setenv("ROLEFIT_MAX_QUESTIONS", "5")
        monkeypatch.setenv("ROLEFIT_DEBOUNCE_SECONDS", "0.5")
        monkeypatch.setenv("ROLEFIT_CORS_ORIGINS", "http://a.test, http://b.test")

        config = AssessmentConfig.from_env()

        assert config.question_model == "gpt-4o"
        assert config.max_questions == 5
        assert config.suggestion_debounce_seconds == 0.5
        assert config.cors_origins == ["http://a.test", "http://b.test"]
        assert config.suggestion_min_length == 2

    def test_tracing_needs_api_key(self, monkeypatch):
        monkeypatch.delenv("LANGCHAIN_API_KEY", raising=False)
        assert AssessmentConfig().configure_tracing() is False

    def test_tracing_sets_project(self, monkeypatch):
        monkeypatch.setenv("LANGCHAIN_API_KEY", "ls-test")
        monkeypatch.delenv("LANGCHAIN_PROJECT", raising=False)
        monkeypatch.delenv("LANGCHAIN_TRACING_V2", raising=False)

        assert AssessmentConfig().configure_tracing() is True
        assert os.environ["LANGCHAIN_TRACING_V2"] == "true"
        assert os.environ["LANGCHAIN_PROJECT"] == "jabri-rolefit-assessment"


class TestModels:

    def test_category_lookup(self):
        assert PrimaryCategory.from_label("Culture and values alignment") is PrimaryCategory.CULTURE
        assert len(PrimaryCategory.labels()) == 6
        with pytest.raises(ValueError):
            PrimaryCategory.from_label("Hobbies")

    def test_question_wire_format(self):
        question = Question.from_dict({
            "id": "q1",
            "text": "Why this role?",
            "primaryCategory": "Motivation and career goals",
            "options": ["A", "Other"],
            "scoringGuide": {"3": "Generic answer"},
        })

        assert question.scoring_guide == {3: "Generic answer"}
        assert question.to_dict()["primaryCategory"] == "Motivation and career goals"
        assert question.summary() == {"text": "Why this role?", "primaryCategory": "Motivation and career goals"}

    def test_answers_with_other(self):
        session = AssessmentSession(
            questions=[make_question(1), make_question(2)],
            answers={"q1": ["A", "Other"]},
            other_inputs={"q1": "Mob programming", "q2": "Late nights", "q3": ""},
        )

        assert session.answers_with_other() == {
            "q1": ["A", "Other", "Other: Mob programming"],
            "q2": ["Other: Late nights"],
        }
        # the stored answers are not modified
        assert session.answers == {"q1": ["A", "Other"]}

    def test_question_wire_defaults(self):
        question = Question.from_dict({
            "id": "q2",
            "text": "Notice period?",
            "primaryCategory": "Practical details and deal breakers",
            "maxAnswerTime": None,
            "scoringGuide": {"1": "Unclear", "notes": "Ask about relocation"},
        })

        assert question.max_answer_time == 90
        assert question.scoring_guide == {1: "Unclear", "notes": "Ask about relocation"}
        assert Question.from_dict({"id": "q3", "scoringGuide": None}).scoring_guide == {}
