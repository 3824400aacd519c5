import json
import logging
from typing import Dict, List, Optional, Any

from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI

from rolefit.errors import GenerationFailed, GenerationParseError
from rolefit.json_extraction import QUESTION_STRATEGIES, extract_json
from rolefit.models import AssessmentConfig, Question, SECOND_TIER_COMPETENCIES, coerce_scoring_guide

logger = logging.getLogger(__name__)
llm_logger = logging.getLogger("llm_interactions")


def build_question(data: Dict[str, Any], question_number: int, config: AssessmentConfig) -> Question:
    """
    Fill defaults into a parsed model payload and make sure the free-text
    option is offered exactly where the model put it, or appended last.
    """
    raw_options = data.get("options")
    options = [str(o) for o in raw_options] if isinstance(raw_options, list) else []
    if config.other_option not in options:
        options.append(config.other_option)

    competencies = data.get("secondTierCompetencies")
    if not isinstance(competencies, list):
        competencies = []

    try:
        max_answer_time = int(data.get("maxAnswerTime") or config.default_max_answer_time)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring invalid maxAnswerTime {data.get('maxAnswerTime')!r}")
        max_answer_time = config.default_max_answer_time

    return Question(
        id=f"q{question_number}",
        text=str(data.get("text") or ""),
        primary_category=str(data.get("primaryCategory") or ""),
        second_tier_competencies=[str(c) for c in competencies],
        options=options,
        what_it_measures=str(data.get("whatItMeasures") or ""),
        max_answer_time=max_answer_time,
        scoring_guide=coerce_scoring_guide(data.get("scoringGuide"))
    )


class QuestionGenerator:
    """LLM-based generation of RoleFit screening questions"""

    def __init__(self, config: AssessmentConfig, llm: Optional[BaseChatModel] = None):
        self.config = config
        self.llm = llm or ChatOpenAI(
            model=config.question_model,
            temperature=config.temperature,
            timeout=config.llm_timeout
        )
        self.output_parser = StrOutputParser()
        self._setup_prompt()

    def _setup_prompt(self):
        """Setup the question generation prompt template"""
        self.prompt = ChatPromptTemplate.from_messages([
            ("system", """You are a RoleFit Assessment Builder creating candidate screening questions.

Secondary competencies you may tag questions with:
{competencies}

Only return the JSON object, no other text."""),
            ("human", """Context:
- Selected Categories: {selected_categories}
- Previous Questions: {previous_questions}
- Previous Answers: {previous_answers}
- Current Question Number: {question_number} of {max_questions}

Generate a NEW assessment question that:
1. Is relevant to one of the selected categories
2. Has NOT been asked before (check previous questions)
3. Is appropriate for the question number and context
4. Takes into account previous answers, including "Other" custom responses
5. Includes {options_per_question} checkbox options plus "Other"
6. Is clear, practical, and scenario-based

Return a JSON object with this structure:
{{
  "text": "Question text here",
  "primaryCategory": "One of the selected categories",
  "secondTierCompetencies": ["Competency 1", "Competency 2"],
  "options": ["Option 1", "Option 2", "Option 3", "Option 4"],
  "whatItMeasures": "What this question measures",
  "maxAnswerTime": {default_max_answer_time},
  "scoringGuide": {{
    "1": "Description for score 1",
    "2": "Description for score 2",
    "3": "Description for score 3",
    "4": "Description for score 4",
    "5": "Description for score 5"
  }}
}}""")
        ])

    def _prompt_inputs(
        self,
        selected_categories: List[str],
        previous_questions: List[Dict[str, str]],
        previous_answers: Dict[str, List[str]],
        question_number: int
    ) -> Dict[str, Any]:
        return {
            "competencies": "\n".join(f"- {c}" for c in SECOND_TIER_COMPETENCIES),
            "selected_categories": json.dumps(list(selected_categories)),
            "previous_questions": json.dumps(previous_questions or []),
            "previous_answers": json.dumps(previous_answers or {}),
            "question_number": question_number,
            "max_questions": self.config.max_questions,
            "options_per_question": self.config.options_per_question,
            "default_max_answer_time": self.config.default_max_answer_time,
        }

    async def generate_question(
        self,
        selected_categories: List[str],
        previous_questions: List[Dict[str, str]],
        previous_answers: Dict[str, List[str]],
        question_number: int
    ) -> Question:
        """
        Ask the model for the next question.

        Args:
            selected_categories: Categories chosen by the user (non-empty)
            previous_questions: {text, primaryCategory} of every accepted question
            previous_answers: question id -> selected options, including "Other: ..." entries
            question_number: 1-based number of the requested question

        Raises:
            GenerationFailed: the model call failed
            GenerationParseError: the reply held no usable JSON object
        """
        inputs = self._prompt_inputs(selected_categories, previous_questions, previous_answers, question_number)

        prompt_for_log = self.prompt.format_prompt(**inputs).to_string()
        llm_logger.info(f"--- LLM PROMPT (Question Generation #{question_number}) ---\n{prompt_for_log}")

        chain = self.prompt | self.llm | self.output_parser
        try:
            content = await chain.ainvoke(inputs)
        except Exception as e:
            logger.error(f"Question generation call failed for question {question_number}: {e}")
            raise GenerationFailed(str(e) or "Failed to generate question") from e

        llm_logger.info(f"--- LLM RESPONSE (Question Generation #{question_number}) ---\n{content}")

        try:
            data = extract_json(content, QUESTION_STRATEGIES, expected_type=dict)
        except ValueError as e:
            logger.error(f"Failed to parse generated question {question_number}: {e}")
            raise GenerationParseError(content) from e

        question = build_question(data, question_number, self.config)
        logger.info(f"Generated question {question.id} in category '{question.primary_category}'")
        return question
