"""Deterministic activity (flow) diagram generation from a FlowModel.

Body selection, first applicable:
  1. Flow Logic elements, emitted in order
  2. Execution steps, classified by keyword into decisions, loops and actions
  3. A canned skeleton chosen from the method name

Every ``if`` opened here is closed with ``endif`` and every ``repeat`` with
``repeat while`` before the final ``stop``, on all three paths.
"""

import logging
import re
from typing import List, Optional, Sequence

from . import notation
from .extractor import extract_thrown_exception
from .models import FlowElementKind, FlowLogicElement, FlowModel

logger = logging.getLogger(__name__)

DIAGRAM_LABEL = "Flow Diagram"

ALTERNATIVE_PATH_ACTION = "Handle alternative path"
LOOP_CONDITION = "More items?"

_DECISION_RE = re.compile(r"\b(?:check|validat|verif|exist|if\b|condition)", re.IGNORECASE)
_LOOP_RE = re.compile(r"\b(?:loop|iterat|repeat|for each\b|while\b)", re.IGNORECASE)


def generate_activity_diagram(
    class_name: str,
    method_name: Optional[str],
    model: FlowModel,
) -> str:
    """Generate PlantUML activity source for one analysed method.

    Args:
        class_name: Class the analysis is about (used in the title and the
            class-level skeleton)
        method_name: Analysed method, or None for a class-level analysis
        model: Extracted flow model; any field may be empty

    Returns:
        PlantUML source text (``@startuml`` ... ``@enduml``)
    """
    lines = notation.header(DIAGRAM_LABEL, class_name, method_name)
    lines.append("start")

    if model.flow_elements:
        logger.debug("Activity body from %d flow elements", len(model.flow_elements))
        lines.extend(_body_from_elements(model.flow_elements))
    elif model.execution_steps:
        logger.debug("Activity body from %d execution steps", len(model.execution_steps))
        lines.extend(_body_from_steps(model.execution_steps))
    else:
        logger.debug("Activity body from method-name heuristic (%s)", method_name)
        lines.extend(_body_from_method_name(class_name, method_name))

    lines.append("stop")
    lines.extend(notation.footer())
    return "\n".join(lines)


# ── Flow Logic elements ──────────────────────────────────────────────


def _body_from_elements(elements: Sequence[FlowLogicElement]) -> List[str]:
    lines: List[str] = []
    i = 0
    while i < len(elements):
        element = elements[i]

        if element.kind is FlowElementKind.DECISION:
            lines.extend(_decision(element.description, element.exception_name))

        elif element.kind is FlowElementKind.LOOP:
            lines.append("repeat")
            lines.append(notation.action(element.description))
            nxt = elements[i + 1] if i + 1 < len(elements) else None
            if nxt is not None and nxt.kind is FlowElementKind.PROCESS:
                lines.append(notation.action(nxt.description))
                i += 1
            lines.append(f"repeat while ({LOOP_CONDITION})")

        else:
            # START, PROCESS and END are plain actions; start/stop are implicit
            lines.append(notation.action(element.description))

        i += 1
    return lines


# ── Execution steps ──────────────────────────────────────────────────


def _body_from_steps(steps: Sequence[str]) -> List[str]:
    lines: List[str] = []
    i = 0
    while i < len(steps):
        step = steps[i]

        if is_decision_step(step):
            lines.extend(_decision(step, extract_thrown_exception(step)))

        elif is_loop_step(step):
            lines.append("repeat")
            lines.append(notation.action(step))
            if i + 1 < len(steps):
                # The following step is the loop body
                lines.append(notation.action(steps[i + 1]))
                i += 1
            lines.append(f"repeat while ({LOOP_CONDITION})")

        else:
            lines.append(notation.action(step))

        i += 1
    return lines


def is_decision_step(step: str) -> bool:
    return _DECISION_RE.search(step) is not None


def is_loop_step(step: str) -> bool:
    return _LOOP_RE.search(step) is not None


def _decision(description: str, exception_name: Optional[str]) -> List[str]:
    lines = [
        f"if ({notation.condition(description)}) then (yes)",
        "else (no)",
    ]
    if exception_name:
        lines.append(notation.action(f"Throw {exception_name}"))
        lines.append("stop")
    else:
        lines.append(notation.action(ALTERNATIVE_PATH_ACTION))
    lines.append("endif")
    return lines


# ── Method-name heuristic ────────────────────────────────────────────

_PROCESS_SKELETON = [
    ":Receive input parameters;",
    "if (Input valid?) then (yes)",
    ":Process request;",
    ":Execute business logic;",
    ":Return result;",
    "else (no)",
    ":Return error;",
    "endif",
]

_CREATE_SKELETON = [
    ":Receive creation parameters;",
    ":Validate input data;",
    "if (Data valid?) then (yes)",
    ":Create new entity;",
    ":Save to database;",
    ":Return created entity;",
    "else (no)",
    ":Return validation error;",
    "endif",
]

_UPDATE_SKELETON = [
    ":Receive update parameters;",
    "if (Entity exists?) then (yes)",
    ":Validate update data;",
    ":Apply changes;",
    ":Save changes;",
    ":Return updated entity;",
    "else (no)",
    ":Return not found error;",
    "endif",
]

_DELETE_SKELETON = [
    ":Receive entity identifier;",
    "if (Entity exists?) then (yes)",
    ":Check dependencies;",
    "if (Safe to delete?) then (yes)",
    ":Delete entity;",
    ":Return success;",
    "else (no)",
    ":Return dependency error;",
    "endif",
    "else (no)",
    ":Return not found error;",
    "endif",
]

_QUERY_SKELETON = [
    ":Receive search parameters;",
    ":Query database;",
    "if (Results found?) then (yes)",
    ":Format results;",
    ":Return data;",
    "else (no)",
    ":Return empty result;",
    "endif",
]

_GENERIC_SKELETON = [
    ":Initialize method;",
    ":Execute main logic;",
    ":Process results;",
    ":Return response;",
]

# Checked in order; first matching prefix wins
_METHOD_SKELETONS = (
    (("process", "handle"), _PROCESS_SKELETON),
    (("create", "add"), _CREATE_SKELETON),
    (("update", "modify"), _UPDATE_SKELETON),
    (("delete", "remove"), _DELETE_SKELETON),
    (("get", "find", "retrieve"), _QUERY_SKELETON),
)


def _body_from_method_name(class_name: str, method_name: Optional[str]) -> List[str]:
    if not method_name:
        return [
            notation.action(f"Initialize {class_name or 'component'}"),
            ":Execute main functionality;",
            ":Process business logic;",
            ":Return results;",
        ]

    lowered = method_name.lower()
    for prefixes, skeleton in _METHOD_SKELETONS:
        if lowered.startswith(prefixes):
            return list(skeleton)
    return list(_GENERIC_SKELETON)
