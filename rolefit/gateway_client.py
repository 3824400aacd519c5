"""
HTTP gateways for a front end that talks to the generation endpoints.

Both classes satisfy the same gateway protocols as the in-process
generators, so a SessionStateMachine can run against a remote server.
"""
import logging
from typing import Dict, List, Optional

import httpx

from rolefit.errors import GenerationFailed, GenerationParseError
from rolefit.models import AssessmentConfig, Question
from rolefit.question_generator import build_question

logger = logging.getLogger(__name__)

QUESTION_PATH = "/api/generate-question"
SUGGESTIONS_PATH = "/api/generate-suggestions"


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.text


class _HttpGateway:
    """
    Base for the HTTP gateways. The owner closes the client, either with
    close() or by using the gateway as an async context manager.
    """

    def __init__(self, base_url: str, timeout: float = 60.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url
        self.timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._client

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class HttpQuestionGateway(_HttpGateway):
    """Requests questions from POST /api/generate-question"""

    def __init__(self, base_url: str, timeout: float = 60.0, client: Optional[httpx.AsyncClient] = None,
                 config: Optional[AssessmentConfig] = None):
        super().__init__(base_url, timeout, client)
        self.config = config or AssessmentConfig()

    async def generate_question(
        self,
        selected_categories: List[str],
        previous_questions: List[Dict[str, str]],
        previous_answers: Dict[str, List[str]],
        question_number: int
    ) -> Question:
        client = await self._get_client()
        payload = {
            "selectedCategories": list(selected_categories),
            "previousQuestions": previous_questions,
            "previousAnswers": previous_answers,
            "questionNumber": question_number,
        }

        try:
            response = await client.post(QUESTION_PATH, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response)
            raise GenerationFailed(f"Question endpoint returned {e.response.status_code}: {message}") from e
        except httpx.HTTPError as e:
            raise GenerationFailed(f"Question request failed: {e}") from e
        except ValueError as e:
            raise GenerationParseError(response.text, "Question endpoint returned invalid JSON") from e

        question = data.get("question") if isinstance(data, dict) else None
        if not isinstance(question, dict):
            raise GenerationParseError(response.text, "Response did not contain a question")
        try:
            return build_question(question, question_number, self.config)
        except (TypeError, ValueError) as e:
            raise GenerationParseError(response.text, f"Malformed question payload: {e}") from e


class HttpSuggestionGateway(_HttpGateway):
    """Requests suggestions from POST /api/generate-suggestions; never raises"""

    def __init__(self, base_url: str, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None,
                 max_suggestions: int = 5):
        super().__init__(base_url, timeout, client)
        self.max_suggestions = max_suggestions

    async def generate_suggestions(self, question_text: str, user_input: str) -> List[str]:
        client = await self._get_client()
        try:
            response = await client.post(
                SUGGESTIONS_PATH,
                json={"questionText": question_text, "userInput": user_input}
            )
            if response.status_code != 200:
                logger.error(f"Suggestion endpoint returned {response.status_code}: {_error_message(response)}")
                return []
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error fetching suggestions: {e}")
            return []

        suggestions = data.get("suggestions") if isinstance(data, dict) else None
        if not isinstance(suggestions, list):
            return []
        return [str(s) for s in suggestions][:self.max_suggestions]
