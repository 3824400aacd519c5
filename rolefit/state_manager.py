# rolefit/state_manager.py
import dataclasses
import logging
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union

from .debouncer import SuggestionDebouncer, SuggestionGateway
from .errors import GenerationFailed, InvalidTransition
from .models import (
    AssessmentConfig,
    AssessmentSession,
    AssessmentStep,
    PrimaryCategory,
    Question,
)

logger = logging.getLogger(__name__)


class QuestionGateway(Protocol):
    async def generate_question(
        self,
        selected_categories: List[str],
        previous_questions: List[Dict[str, str]],
        previous_answers: Dict[str, List[str]],
        question_number: int,
    ) -> Question:
        ...


class SessionStateMachine:
    """
    Drives one assessment session from category selection through
    question answering to completion.

    Gateways are injected; the machine never constructs an LLM client.
    All intents are applied synchronously except the ones that need a new
    question, which await the question gateway.
    """

    def __init__(
        self,
        question_gateway: QuestionGateway,
        suggestion_gateway: SuggestionGateway,
        config: Optional[AssessmentConfig] = None,
    ):
        self.config = config or AssessmentConfig()
        self.question_gateway = question_gateway
        self.session = AssessmentSession()
        self.debouncer = SuggestionDebouncer(suggestion_gateway, self.config)
        self.is_generating = False
        # Bumped on reset so late gateway results can be recognised and dropped
        self._epoch = 0

    @property
    def step(self) -> AssessmentStep:
        return self.session.step

    @property
    def current_question(self) -> Optional[Question]:
        return self.session.get_current_question()

    @property
    def suggestions(self) -> List[str]:
        return list(self.debouncer.suggestions)

    # --- category selection -------------------------------------------------

    def toggle_category(self, category: Union[str, PrimaryCategory]) -> bool:
        """Flip a category's membership; returns whether it is now selected"""
        if self.step != AssessmentStep.SELECTING_CATEGORIES:
            logger.debug(f"Ignoring category toggle in step {self.step.value}")
            return False
        try:
            label = PrimaryCategory(category).value
        except ValueError:
            logger.warning(f"Ignoring unknown category: {category!r}")
            return False

        selected = self.session.selected_categories
        if label in selected:
            selected.remove(label)
            return False
        selected.append(label)
        return True

    async def continue_to_questions(self) -> Optional[Question]:
        """Leave category selection and generate the first question"""
        if self.step != AssessmentStep.SELECTING_CATEGORIES:
            raise InvalidTransition(f"Cannot continue to questions from step {self.step.value}")
        if not self.session.selected_categories:
            raise InvalidTransition("Cannot continue without at least one category")

        self.session.step = AssessmentStep.ANSWERING_QUESTIONS
        self.session.current_question_index = 0
        logger.info(f"Starting questions for categories {self.session.selected_categories}")
        return await self.request_question()

    # --- question generation ------------------------------------------------

    async def request_question(self) -> Optional[Question]:
        """
        Generate and append the next question.

        Returns None without calling the gateway when a generation is
        already in flight. Returns None as well when the result arrives
        after the session was reset or the slot was filled some other way.

        Raises:
            InvalidTransition: not answering questions, or all questions exist
            GenerationFailed: the gateway failed; the session is unchanged
        """
        if self.is_generating:
            logger.info("Question generation already in flight, dropping request")
            return None
        if self.step != AssessmentStep.ANSWERING_QUESTIONS:
            raise InvalidTransition(f"Cannot request a question in step {self.step.value}")
        if len(self.session.questions) >= self.config.max_questions:
            raise InvalidTransition(f"All {self.config.max_questions} questions have been generated")

        question_number = len(self.session.questions) + 1
        epoch = self._epoch
        self.is_generating = True
        try:
            question = await self._call_question_gateway(question_number)
        except GenerationFailed as e:
            logger.debug(f"Question {question_number} not generated: {e.message}")
            raise
        finally:
            if epoch == self._epoch:
                self.is_generating = False

        if (
            epoch != self._epoch
            or self.step != AssessmentStep.ANSWERING_QUESTIONS
            or len(self.session.questions) != question_number - 1
        ):
            logger.warning(f"Discarding question {question_number} that arrived for a stale session")
            return None

        question = self._normalize(question, question_number)
        self.session.questions.append(question)
        self.session.current_question_index = len(self.session.questions) - 1
        self.debouncer.clear()
        logger.info(f"Accepted question {question.id} ({question_number}/{self.config.max_questions})")
        return question

    async def _call_question_gateway(self, question_number: int) -> Question:
        try:
            return await self.question_gateway.generate_question(
                list(self.session.selected_categories),
                [q.summary() for q in self.session.questions],
                self.session.answers_with_other(),
                question_number,
            )
        except GenerationFailed:
            raise
        except Exception as e:
            raise GenerationFailed(str(e) or "Failed to generate question") from e

    def _normalize(self, question: Question, question_number: int) -> Question:
        other = self.config.other_option
        changes: Dict[str, Any] = {}
        if question.id != f"q{question_number}":
            changes["id"] = f"q{question_number}"
        if other not in question.options:
            changes["options"] = list(question.options) + [other]
        return dataclasses.replace(question, **changes) if changes else question

    # --- answering ----------------------------------------------------------

    def toggle_option(self, option: str) -> bool:
        """Flip an option for the current question; returns whether it is now selected"""
        question = self.current_question
        if self.step != AssessmentStep.ANSWERING_QUESTIONS or question is None:
            return False

        selected = self.session.answers.setdefault(question.id, [])
        if option not in selected:
            selected.append(option)
            return True

        selected.remove(option)
        if option == self.config.other_option:
            # Free text never outlives its "Other" selection
            self.session.other_inputs[question.id] = ""
            self.debouncer.clear()
        return False

    def set_other_text(self, value: str) -> bool:
        """
        Store the "Other" free text for the current question.

        Returns True when a debounced suggestion fetch was scheduled. Must be
        called from within a running event loop.
        """
        question = self.current_question
        if self.step != AssessmentStep.ANSWERING_QUESTIONS or question is None:
            self.debouncer.clear()
            return False

        self.session.other_inputs[question.id] = value
        if len(value) < self.config.suggestion_min_length:
            self.debouncer.clear()
            return False
        return self.debouncer.schedule(question.text, value)

    def select_suggestion(self, suggestion: str) -> bool:
        """Use a suggestion verbatim as the free text and close the list"""
        question = self.current_question
        if self.step != AssessmentStep.ANSWERING_QUESTIONS or question is None:
            self.debouncer.clear()
            return False
        self.session.other_inputs[question.id] = suggestion
        self.debouncer.clear()
        return True

    def dismiss_suggestions(self):
        self.debouncer.clear()

    # --- navigation ---------------------------------------------------------

    async def advance(self) -> AssessmentStep:
        """Move forward, generating the next question or completing the session"""
        if self.step != AssessmentStep.ANSWERING_QUESTIONS:
            raise InvalidTransition(f"Cannot advance in step {self.step.value}")

        count = len(self.session.questions)
        if self.session.current_question_index < count - 1:
            self.session.current_question_index += 1
            self.debouncer.clear()
        elif count < self.config.max_questions:
            await self.request_question()
        else:
            self.session.step = AssessmentStep.COMPLETE
            self.debouncer.clear()
            logger.info("Assessment complete")
        return self.step

    def retreat(self) -> bool:
        if self.step != AssessmentStep.ANSWERING_QUESTIONS or self.session.current_question_index <= 0:
            return False
        self.session.current_question_index -= 1
        self.debouncer.clear()
        return True

    def reset(self):
        """Discard the whole session and return to category selection"""
        self._epoch += 1
        self.is_generating = False
        self.debouncer.clear()
        self.session.clear()
        logger.info("Session reset")

    # --- view ---------------------------------------------------------------

    def progress(self) -> Tuple[int, int]:
        """1-based position and the total shown by the progress bar"""
        total = max(len(self.session.questions), self.config.max_questions)
        return self.session.current_question_index + 1, total

    def is_last_question(self) -> bool:
        count = len(self.session.questions)
        return count >= self.config.max_questions and self.session.current_question_index == count - 1

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view of the session for the front end"""
        question = self.current_question
        current, total = self.progress()
        return {
            "step": self.step.value,
            "selected_categories": list(self.session.selected_categories),
            "question_count": len(self.session.questions),
            "current_question_index": self.session.current_question_index,
            "current_question": question.to_dict() if question else None,
            "selected_options": list(self.session.answers.get(question.id, [])) if question else [],
            "other_input": self.session.other_inputs.get(question.id, "") if question else "",
            "is_generating": self.is_generating,
            "is_last_question": self.is_last_question(),
            "progress": {"current": current, "total": total},
        }
