"""
Operator confirmation prompts.

A single parser turns free-text answers into a tri-state result, consumed the
same way by the reduce stage and the reset operation.
"""

import logging
from enum import Enum
from typing import Callable, Optional

from .errors import UserDeclinedError, UserInputInvalidError

logger = logging.getLogger(__name__)

YES_ANSWERS = ("y", "yes")
NO_ANSWERS = ("n", "no")


class Confirmation(Enum):
    CONFIRMED = "confirmed"
    DECLINED = "declined"
    INVALID = "invalid"


def parse_confirmation(answer: Optional[str]) -> Confirmation:
    """
    Classify an operator's answer.

    Examples:
        >>> parse_confirmation("Y")
        Confirmation.CONFIRMED
        >>> parse_confirmation(" no ")
        Confirmation.DECLINED
        >>> parse_confirmation("maybe")
        Confirmation.INVALID
    """
    if answer is None:
        return Confirmation.INVALID

    normalized = answer.strip().lower()
    if normalized in YES_ANSWERS:
        return Confirmation.CONFIRMED
    if normalized in NO_ANSWERS:
        return Confirmation.DECLINED
    return Confirmation.INVALID


def read_answer(question: str, input_fn: Callable[[str], str] = input) -> Optional[str]:
    """Prompt once. Returns None if input is closed."""
    try:
        return input_fn(f"{question} (y/n): ")
    except EOFError:
        return None


def require_confirmation(result: Confirmation, answer: Optional[str] = "") -> None:
    """
    Turn anything other than a confirmation into the matching error.

    Raises:
        UserDeclinedError: On DECLINED (exit code 0)
        UserInputInvalidError: On INVALID (exit code 1)
    """
    if result is Confirmation.DECLINED:
        raise UserDeclinedError()
    if result is Confirmation.INVALID:
        raise UserInputInvalidError(answer or "")


def confirm(question: str, input_fn: Callable[[str], str] = input) -> None:
    """Prompt and return only if the operator confirmed."""
    answer = read_answer(question, input_fn)
    result = parse_confirmation(answer)
    logger.debug(f"Prompt {question!r} answered {answer!r} -> {result.value}")
    require_confirmation(result, answer)
