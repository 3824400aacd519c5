import logging
from typing import List, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI

from rolefit.errors import SuggestionDegraded
from rolefit.json_extraction import SUGGESTION_STRATEGIES, extract_json
from rolefit.models import AssessmentConfig

logger = logging.getLogger(__name__)
llm_logger = logging.getLogger("llm_interactions")


class SuggestionGenerator:
    """Completes a candidate's free-text "Other" answer with short suggestions"""

    def __init__(self, config: AssessmentConfig, llm: Optional[BaseChatModel] = None):
        self.config = config
        self.llm = llm or ChatOpenAI(
            model=config.suggestion_model,
            temperature=config.temperature,
            timeout=config.llm_timeout
        )
        self._setup_prompt()

    def _setup_prompt(self):
        """Setup the suggestion prompt template"""
        self.prompt = ChatPromptTemplate.from_messages([
            ("system", "You are helping a candidate fill out an assessment form."),
            ("human", """Question: {question_text}
User Input: {user_input}

Based on the question and the user's partial input, generate {count} relevant suggestions that:
1. Are contextually appropriate for the question
2. Match or relate to the user's input
3. Are specific and actionable
4. Are professional and relevant to job assessments

Return ONLY a JSON array of strings, no other text.
Example: ["Suggestion 1", "Suggestion 2", "Suggestion 3", "Suggestion 4", "Suggestion 5"]""")
        ])

    async def _request_suggestions(self, question_text: str, user_input: str) -> List[str]:
        inputs = {
            "question_text": question_text,
            "user_input": user_input,
            "count": self.config.max_suggestions,
        }
        llm_logger.info(
            f"--- LLM PROMPT (Suggestions) ---\n{self.prompt.format_prompt(**inputs).to_string()}"
        )

        chain = self.prompt | self.llm | StrOutputParser()
        try:
            content = await chain.ainvoke(inputs)
        except Exception as e:
            raise SuggestionDegraded(f"Suggestion call failed: {e}") from e

        llm_logger.info(f"--- LLM RESPONSE (Suggestions) ---\n{content}")

        try:
            suggestions = extract_json(content, SUGGESTION_STRATEGIES, expected_type=list)
        except ValueError as e:
            raise SuggestionDegraded(str(e), raw_text=content) from e

        return [str(s) for s in suggestions if isinstance(s, (str, int, float))]

    async def generate_suggestions(self, question_text: str, user_input: str) -> List[str]:
        """Return at most max_suggestions strings; any failure yields an empty list"""
        try:
            suggestions = await self._request_suggestions(question_text, user_input)
        except SuggestionDegraded as e:
            logger.error(f"Suggestion generation degraded to empty list: {e.message}")
            return []

        return suggestions[:self.config.max_suggestions]
