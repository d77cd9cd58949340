"""
services/prompt_service.py – Blocking line prompts for the operator.
"""

from typing import Callable

from services.exceptions import OperatorAbortError


def prompt_operator(message: str, *, input_fn: Callable[[], str] = input) -> str:
    """
    Print *message*, read one line and return it with surrounding whitespace
    removed.

    Raises
    ------
    OperatorAbortError if the input stream is closed.
    """
    print(message, flush=True)
    try:
        line = input_fn()
    except EOFError as exc:
        raise OperatorAbortError("Input closed while waiting for the operator.") from exc
    return line.strip()
