"""
Question generation tests against a fake chat model.
"""
import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from conftest import QUESTION_JSON, TECHNICAL
from rolefit.errors import GenerationFailed, GenerationParseError
from rolefit.models import AssessmentConfig
from rolefit.question_generator import QuestionGenerator, build_question


class UnreachableChatModel(FakeListChatModel):
    """Fails every call the way a dropped connection would."""

    def _call(self, *args, **kwargs):
        raise ConnectionError("connection refused")


def generator_for(*responses):
    return QuestionGenerator(AssessmentConfig(), llm=FakeListChatModel(responses=list(responses)))


async def generate(generator, number=1):
    return await generator.generate_question([TECHNICAL], [], {}, number)


class TestQuestionGenerator:

    @pytest.mark.asyncio
    async def test_defaults_filled_for_minimal_payload(self):
        """A payload without 'Other' or scoring guide gets the documented defaults."""
        question = await generate(generator_for(QUESTION_JSON))

        assert question.id == "q1"
        assert question.text == "Describe a debugging approach"
        assert question.primary_category == TECHNICAL
        assert question.options == ["A", "B", "C", "D", "Other"]
        assert question.max_answer_time == 90
        assert question.scoring_guide == {}
        assert question.second_tier_competencies == []
        assert question.what_it_measures == ""

    @pytest.mark.asyncio
    async def test_fenced_reply(self):
        reply = f"Sure! Here is the question:\n```json\n{QUESTION_JSON}\n```"
        question = await generate(generator_for(reply), number=4)

        assert question.id == "q4"
        assert question.options[-1] == "Other"

    @pytest.mark.asyncio
    async def test_malformed_reply_raises_parse_error(self):
        with pytest.raises(GenerationParseError) as exc_info:
            await generate(generator_for("Sorry, I can't do that."))

        assert exc_info.value.raw_text == "Sorry, I can't do that."
        assert isinstance(exc_info.value, GenerationFailed)

    @pytest.mark.asyncio
    async def test_transport_failure_is_generation_failed(self):
        generator = QuestionGenerator(AssessmentConfig(), llm=UnreachableChatModel(responses=["unused"]))

        with pytest.raises(GenerationFailed) as exc_info:
            await generate(generator)

        assert not isinstance(exc_info.value, GenerationParseError)
        assert "connection refused" in exc_info.value.message

    def test_prompt_carries_context(self):
        generator = generator_for(QUESTION_JSON)
        inputs = generator._prompt_inputs(
            [TECHNICAL],
            [{"text": "Q1", "primaryCategory": TECHNICAL}],
            {"q1": ["A", "Other: Pairing"]},
            2
        )
        prompt = generator.prompt.format_prompt(**inputs).to_string()

        assert "Current Question Number: 2 of 10" in prompt
        assert '"Other: Pairing"' in prompt
        assert "Ownership and accountability" in prompt


class TestBuildQuestion:

    def test_full_payload(self):
        data = {
            "text": "How do you handle a missed deadline?",
            "primaryCategory": "Soft skills and ways of working",
            "secondTierCompetencies": ["Ownership and accountability"],
            "options": ["Escalate", "Replan", "Other", "Absorb", "Ignore"],
            "whatItMeasures": "Accountability",
            "maxAnswerTime": 120,
            "scoringGuide": {"1": "Blames others", "5": "Owns and replans"},
        }
        question = build_question(data, 7, AssessmentConfig())

        assert question.id == "q7"
        assert question.options == ["Escalate", "Replan", "Other", "Absorb", "Ignore"]
        assert question.max_answer_time == 120
        assert question.scoring_guide == {1: "Blames others", 5: "Owns and replans"}
        assert question.to_dict()["scoringGuide"] == {"1": "Blames others", "5": "Owns and replans"}

    def test_missing_options_still_offers_other(self):
        question = build_question({"text": "Anything else?"}, 10, AssessmentConfig())
        assert question.options == ["Other"]

    def test_invalid_max_answer_time_uses_default(self):
        question = build_question({"maxAnswerTime": "soon"}, 1, AssessmentConfig())
        assert question.max_answer_time == 90
