import asyncio
import logging
from typing import List, Optional, Protocol

from rolefit.models import AssessmentConfig

logger = logging.getLogger(__name__)


class SuggestionGateway(Protocol):
    async def generate_suggestions(self, question_text: str, user_input: str) -> List[str]:
        ...


class SuggestionDebouncer:
    """
    Throttles free-text triggered suggestion fetches to one per pause in typing.

    Every schedule() supersedes the previous one. A fetch still waiting out
    the quiet period is cancelled outright; a fetch already in flight is left
    to finish, and its result is dropped because its version is stale.
    """

    def __init__(self, gateway: SuggestionGateway, config: AssessmentConfig):
        self.gateway = gateway
        self.quiet_period = config.suggestion_debounce_seconds
        self.min_length = config.suggestion_min_length
        self.max_suggestions = config.max_suggestions
        self.suggestions: List[str] = []
        self.is_loading = False
        self._version = 0
        self._task: Optional[asyncio.Task] = None
        self._in_flight = False

    @property
    def is_pending(self) -> bool:
        """True while a fetch is scheduled or in flight"""
        return self._task is not None and not self._task.done()

    def schedule(self, question_text: str, text: str) -> bool:
        """Reschedule the fetch for text; returns False if text is too short to fetch"""
        self.cancel()
        if len(text) < self.min_length:
            self.suggestions = []
            return False

        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(self._version, question_text, text))
        return True

    def cancel(self):
        """Invalidate any scheduled or in-flight fetch"""
        self._version += 1
        if self._task is not None and not self._task.done() and not self._in_flight:
            self._task.cancel()
        self._task = None
        self._in_flight = False
        self.is_loading = False

    def clear(self):
        """Cancel pending work and drop the current suggestions"""
        self.cancel()
        self.suggestions = []

    async def wait(self):
        """Wait for the current fetch, if any, to settle"""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self, version: int, question_text: str, text: str):
        await asyncio.sleep(self.quiet_period)
        if version != self._version:
            return

        self._in_flight = True
        self.is_loading = True
        try:
            suggestions = await self.gateway.generate_suggestions(question_text, text)
        except Exception as e:
            logger.error(f"Error fetching suggestions: {e}")
            suggestions = []

        if version != self._version:
            logger.debug(f"Discarding stale suggestions for {text!r}")
            return

        self._in_flight = False
        self.is_loading = False
        self.suggestions = list(suggestions)[:self.max_suggestions]
        logger.debug(f"Received {len(self.suggestions)} suggestions for {text!r}")
