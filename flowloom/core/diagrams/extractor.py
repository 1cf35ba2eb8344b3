"""FlowModel extraction from free-form analysis text.

The analysis text is markdown produced by an LLM. It may contain any of the
headed sections below, in any order, or none of them::

    **Involved Classes:** [OrderService, PaymentService]
    **Execution Steps:**
    1. Validate the order
    **Flow Logic:**
    - DECISION: Order exists? throw NotFoundException
    **Sequence Interactions:**
    1. OrderController -> OrderService.placeOrder(order)
    **Exception Handling:**
    - NotFoundException when the order is missing

Fields with several extraction tiers are resolved by an ordered chain of
strategies. Each strategy returns a non-empty list or None; the first
non-empty result wins and the remaining tiers are never tried. Extraction
never raises: a missing or garbled section just leaves its field empty.
"""

import logging
import re
from typing import Callable, Iterable, List, Optional, Sequence

from ..constants import (
    SECTION_EXCEPTION_HANDLING,
    SECTION_EXECUTION_STEPS,
    SECTION_FLOW_LOGIC,
    SECTION_INVOLVED_CLASSES,
    SECTION_SEQUENCE_INTERACTIONS,
)
from .cleaner import clean_step_text
from .models import FlowElementKind, FlowLogicElement, FlowModel, SequenceInteraction

logger = logging.getLogger(__name__)

Strategy = Callable[[str], Optional[List[str]]]

# ── Patterns ─────────────────────────────────────────────────────────

_ROLE_SUFFIXES = (
    "Service", "Controller", "Repository", "Component", "Manager", "Handler",
    "DAO", "Entity", "DTO", "Model", "Facade", "Factory", "Builder",
    "Validator", "Processor", "Gateway", "Client", "Provider", "Adapter",
)

_INVOLVED_CLASSES_RE = re.compile(
    r"\*\*" + re.escape(SECTION_INVOLVED_CLASSES) + r":\*\*\s*\[([^\]]+)\]"
)
_ROLE_SUFFIX_RE = re.compile(
    r"\b([A-Z][a-zA-Z0-9_]*(?:" + "|".join(_ROLE_SUFFIXES) + r"))\b"
)
_CLASS_METHOD_RE = re.compile(r"\b([A-Z][a-zA-Z0-9_]+)\.([a-z][a-zA-Z0-9_]*)\(")
_CAPITALIZED_RE = re.compile(r"\b([A-Z][a-zA-Z0-9_]{2,})\b")

_STEPS_SECTION_RE = re.compile(
    r"\*\*" + re.escape(SECTION_EXECUTION_STEPS)
    + r":\*\*[ \t]*\r?\n(?:[ \t]*\r?\n)*((?:[ \t]*\d+\..*(?:\n|$))+)"
)
_NUMBERED_LINE_RE = re.compile(r"^\s*\d+\.\s*(.*)$")
_BULLET_LINE_RE = re.compile(r"^[ \t]*[-•][ \t]*(.+)$", re.MULTILINE)

_THROW_RE = re.compile(r"throw\s+([A-Z][a-zA-Z0-9]*Exception)")
_EXCEPTION_NAME_RE = re.compile(r"\b([A-Z][a-zA-Z0-9]*Exception)\b")
_INTERACTION_RE = re.compile(
    r"\d+\.\s*([A-Za-z0-9_]+)\s*->\s*([A-Za-z0-9_]+)\.([a-zA-Z0-9_]+)\(([^)]*)\)"
)

_FLOW_PREFIXES = (
    ("- START:", FlowElementKind.START),
    ("- DECISION:", FlowElementKind.DECISION),
    ("- LOOP:", FlowElementKind.LOOP),
    ("- PROCESS:", FlowElementKind.PROCESS),
    ("- END:", FlowElementKind.END),
)

# Capitalized words that are prose, flow keywords or our own headings
_STOPWORDS = frozenset({
    "The", "This", "That", "These", "Those", "Then", "Than", "There", "Here",
    "When", "Where", "What", "Which", "Who", "How", "Why", "And", "But",
    "For", "With", "From", "Into", "After", "Before", "Each", "Every", "All",
    "Any", "Not", "Otherwise", "Finally", "First", "Next", "Also", "Note",
    "Project", "Method", "Class", "Classes", "Input", "Output", "Return",
    "Returns", "Data", "Flow", "Logic", "Step", "Steps", "Process", "Start",
    "End", "Decision", "Loop", "Involved", "Execution", "Sequence",
    "Interactions", "Exception", "Handling", "Analysis", "Summary",
    "START", "END", "DECISION", "LOOP", "PROCESS",
})

MAX_SUFFIX_CLASSES = 8
MAX_CALL_SITE_CLASSES = 8
MAX_GENERIC_CLASSES = 6
MAX_BULLET_STEPS = 10
MIN_BULLET_STEP_LENGTH = 10


# ── Public API ───────────────────────────────────────────────────────


def extract_flow_model(raw_text: Optional[str]) -> FlowModel:
    """Build a FlowModel from analysis text. Never raises.

    Args:
        raw_text: Markdown analysis produced by the language model. ``None``
            is treated as empty text.

    Returns:
        FlowModel with whatever structure could be recognised.
    """
    # Form posts and HTTP clients often send CRLF
    text = (raw_text or "").replace("\r\n", "\n")

    model = FlowModel(
        flow_elements=tuple(extract_flow_logic(text)),
        sequence_interactions=tuple(extract_sequence_interactions(text)),
        involved_classes=tuple(extract_involved_classes(text)),
        execution_steps=tuple(extract_execution_steps(text)),
        exception_types=tuple(extract_exception_types(text)),
    )

    logger.debug(
        "Extracted flow model: %d elements, %d interactions, %d classes, "
        "%d steps, %d exceptions",
        len(model.flow_elements),
        len(model.sequence_interactions),
        len(model.involved_classes),
        len(model.execution_steps),
        len(model.exception_types),
    )
    return model


def extract_involved_classes(text: str) -> List[str]:
    return _first_match(
        (
            _classes_from_section,
            _classes_by_role_suffix,
            _classes_from_call_sites,
            _classes_by_capitalization,
        ),
        text,
    )


def extract_execution_steps(text: str) -> List[str]:
    steps = _first_match((_steps_from_section, _steps_from_bullets), text)
    return [clean_step_text(step) for step in steps]


def extract_flow_logic(text: str) -> List[FlowLogicElement]:
    """Parse ``- KIND: description`` lines of the Flow Logic section.

    There is no heuristic fallback: without the section the activity
    synthesizer falls back on execution steps instead.
    """
    section = section_body(text, SECTION_FLOW_LOGIC)
    if section is None:
        return []

    elements = []
    for line in section.splitlines():
        line = line.strip()
        for prefix, kind in _FLOW_PREFIXES:
            if not line.startswith(prefix):
                continue
            description = line[len(prefix):].strip()
            exception_name = None
            if kind is FlowElementKind.DECISION:
                exception_name = extract_thrown_exception(description)
            elements.append(FlowLogicElement(kind, description, exception_name))
            break
    return elements


def extract_sequence_interactions(text: str) -> List[SequenceInteraction]:
    """Parse ``N. Source -> Target.method(params)`` lines; others are skipped."""
    section = section_body(text, SECTION_SEQUENCE_INTERACTIONS)
    if section is None:
        return []

    interactions = []
    for line in section.splitlines():
        match = _INTERACTION_RE.search(line.strip())
        if not match:
            continue
        source, target, method, params = match.groups()
        interactions.append(SequenceInteraction(source, target, method, params.strip()))
    return interactions


def extract_exception_types(text: str) -> List[str]:
    section = section_body(text, SECTION_EXCEPTION_HANDLING)
    if section is None:
        return []
    return _dedupe(_EXCEPTION_NAME_RE.findall(section))


def extract_thrown_exception(text: str) -> Optional[str]:
    """Return ``Name`` from a ``throw NameException`` phrase, if present."""
    match = _THROW_RE.search(text)
    return match.group(1) if match else None


def section_body(text: str, heading: str) -> Optional[str]:
    """Return the text after ``**heading:**`` up to the next ``**`` or the end."""
    pattern = re.compile(
        r"\*\*" + re.escape(heading) + r":\*\*[ \t]*\r?\n(.*?)(?=\*\*|\Z)", re.DOTALL
    )
    match = pattern.search(text)
    return match.group(1) if match else None


# ── Involved-class strategies ────────────────────────────────────────


def _classes_from_section(text: str) -> Optional[List[str]]:
    match = _INVOLVED_CLASSES_RE.search(text)
    if not match:
        return None
    names = [name.strip() for name in match.group(1).split(",")]
    return _dedupe(name for name in names if name) or None


def _classes_by_role_suffix(text: str) -> Optional[List[str]]:
    names = _dedupe(_ROLE_SUFFIX_RE.findall(text))
    return names[:MAX_SUFFIX_CLASSES] or None


def _classes_from_call_sites(text: str) -> Optional[List[str]]:
    names = _dedupe(cls for cls, _method in _CLASS_METHOD_RE.findall(text))
    return names[:MAX_CALL_SITE_CLASSES] or None


def _classes_by_capitalization(text: str) -> Optional[List[str]]:
    names = _dedupe(
        word for word in _CAPITALIZED_RE.findall(text) if word not in _STOPWORDS
    )
    return names[:MAX_GENERIC_CLASSES] or None


# ── Execution-step strategies ────────────────────────────────────────


def _steps_from_section(text: str) -> Optional[List[str]]:
    match = _STEPS_SECTION_RE.search(text)
    if not match:
        return None

    steps = []
    for line in match.group(1).splitlines():
        numbered = _NUMBERED_LINE_RE.match(line)
        if not numbered:
            continue
        step = numbered.group(1).strip()
        if step:
            steps.append(step)
    return steps or None


def _steps_from_bullets(text: str) -> Optional[List[str]]:
    steps = []
    for match in _BULLET_LINE_RE.finditer(text):
        step = match.group(1).strip()
        if len(step) > MIN_BULLET_STEP_LENGTH:
            steps.append(step)
        if len(steps) >= MAX_BULLET_STEPS:
            break
    return steps or None


# ── Helpers ──────────────────────────────────────────────────────────


def _first_match(strategies: Sequence[Strategy], text: str) -> List[str]:
    for strategy in strategies:
        result = strategy(text)
        if result:
            return result
    return []


def _dedupe(items: Iterable[str]) -> List[str]:
    seen = set()
    unique = []
    for item in items:
        if item not in seen:
            seen.add(item)
            unique.append(item)
    return unique
