"""
Extraction of JSON payloads from free-form model replies.

Each strategy takes the raw reply and either returns the decoded value or
raises ValueError. extract_json tries a sequence of strategies in order
and returns the first result of the expected type.
"""
import json
import logging
import re
from typing import Any, Callable, Optional, Sequence, Tuple, Type

logger = logging.getLogger(__name__)

Strategy = Callable[[str], Any]

_FENCED_OBJECT = re.compile(r"```(?:json)?\s*(\{[\s\S]*\})\s*```")
_FENCED_ARRAY = re.compile(r"```(?:json)?\s*(\[[\s\S]*\])\s*```")
_BRACKETED = re.compile(r"\[([\s\S]*?)\]")


def parse_direct(text: str) -> Any:
    """The whole reply is JSON."""
    return json.loads(text)


def parse_fenced_object(text: str) -> Any:
    """A JSON object inside a ``` or ```json code fence."""
    match = _FENCED_OBJECT.search(text)
    if not match:
        raise ValueError("no fenced JSON object found")
    return json.loads(match.group(1))


def parse_fenced_array(text: str) -> Any:
    """A JSON array inside a ``` or ```json code fence."""
    match = _FENCED_ARRAY.search(text)
    if not match:
        raise ValueError("no fenced JSON array found")
    return json.loads(match.group(1))


def parse_bracketed_array(text: str) -> Any:
    """Last resort: the first [...] span anywhere in the reply."""
    match = _BRACKETED.search(text)
    if not match:
        raise ValueError("no bracketed array found")
    return json.loads(f"[{match.group(1)}]")


QUESTION_STRATEGIES: Tuple[Strategy, ...] = (parse_direct, parse_fenced_object)
SUGGESTION_STRATEGIES: Tuple[Strategy, ...] = (parse_direct, parse_fenced_array, parse_bracketed_array)


def extract_json(
    text: str,
    strategies: Sequence[Strategy],
    expected_type: Optional[Type] = None
) -> Any:
    """
    Run the strategies in order and return the first successful result.

    Args:
        text: Raw model reply
        strategies: Parsing strategies, tried in the given order
        expected_type: If set, a result of any other type counts as a failure

    Raises:
        ValueError: when no strategy produced a usable result
    """
    if not isinstance(text, str) or not text.strip():
        raise ValueError("empty reply")

    failures = []
    for strategy in strategies:
        try:
            result = strategy(text)
        except (ValueError, RecursionError) as e:
            failures.append(f"{strategy.__name__}: {e}")
            continue
        if expected_type is not None and not isinstance(result, expected_type):
            failures.append(f"{strategy.__name__}: got {type(result).__name__}")
            continue
        logger.debug(f"Extracted JSON with {strategy.__name__}")
        return result

    raise ValueError("Could not parse JSON from response (" + "; ".join(failures) + ")")
