"""Normalisation for execution-step text pulled out of analysis markdown."""

import re

MAX_STEP_LENGTH = 80
_ELLIPSIS = "..."

_BOLD_RE = re.compile(r"\*\*([^*]+)\*\*")
_ITALIC_RE = re.compile(r"\*([^*]+)\*")


def clean_step_text(step: str) -> str:
    """Strip bold/italic markers and bound the length for diagram labels.

    Only the emphasis wrapping is removed. A result longer than 80 characters
    is cut to 77 and ``...`` is appended, so labels never exceed 80.
    """
    step = _BOLD_RE.sub(r"\1", step)
    step = _ITALIC_RE.sub(r"\1", step)

    if len(step) > MAX_STEP_LENGTH:
        step = step[: MAX_STEP_LENGTH - len(_ELLIPSIS)] + _ELLIPSIS

    return step
