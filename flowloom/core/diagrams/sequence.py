"""Deterministic sequence diagram generation from a FlowModel.

Two paths:
  - Explicit ``Sequence Interactions`` are replayed in order, with an
    activation stack deciding which participant is executing.
  - Otherwise a linear call chain is derived from the involved classes and
    execution steps, starting from ``Client`` and the analysed class.

Activations are always balanced: every participant is deactivated as many
times as it is activated.
"""

import logging
import re
from typing import List, Optional, Sequence

from . import notation
from .models import FlowModel, SequenceInteraction

logger = logging.getLogger(__name__)

DIAGRAM_LABEL = "Sequence Diagram"
CLIENT = "Client"

_BARE_CALL_RE = re.compile(r"([a-z][a-zA-Z0-9_]*)\(([^)]*)\)")

# Fallback call names keyed by a substring of the lower-cased target class
_INFERRED_METHODS = (
    (("validation", "validator"), "validate()"),
    (("repository", "dao"), "findById()"),
    (("notification",), "sendNotification()"),
    (("inventory",), "checkAvailability()"),
    (("payment",), "processPayment()"),
    (("order",), "processOrder()"),
)
_DEFAULT_METHOD = "process()"


def generate_sequence_diagram(
    class_name: str,
    method_name: Optional[str],
    model: FlowModel,
) -> str:
    """Generate PlantUML sequence source for one analysed method.

    Args:
        class_name: Class the analysis is about; first callee in the derived chain
        method_name: Analysed method, or None for a class-level analysis
        model: Extracted flow model; any field may be empty

    Returns:
        PlantUML source text (``@startuml`` ... ``@enduml``)
    """
    lines = notation.header(DIAGRAM_LABEL, class_name, method_name)

    if model.sequence_interactions:
        logger.debug(
            "Sequence from %d explicit interactions", len(model.sequence_interactions)
        )
        lines.extend(_from_interactions(model.sequence_interactions))
    else:
        logger.debug(
            "Sequence derived from %d classes and %d steps",
            len(model.involved_classes),
            len(model.execution_steps),
        )
        lines.extend(
            _from_classes(
                class_name, method_name, model.involved_classes, model.execution_steps
            )
        )

    lines.extend(notation.footer())
    return "\n".join(lines)


# ── Explicit interactions ────────────────────────────────────────────


def _from_interactions(interactions: Sequence[SequenceInteraction]) -> List[str]:
    registry = notation.AliasRegistry()
    registry.register(CLIENT)
    for interaction in interactions:
        registry.register(interaction.source)
        registry.register(interaction.target)

    lines = registry.declarations()
    lines.append("")

    active: List[str] = []
    for interaction in interactions:
        source = registry.alias(interaction.source)
        target = registry.alias(interaction.target)

        if not active or active[-1] != target:
            # Unwind everything the caller is not nested inside of
            while active and active[-1] != source:
                lines.append(f"deactivate {active.pop()}")
            lines.append(f"activate {target}")
            active.append(target)

        lines.append(f"{source} -> {target} : {interaction.call_label}")
        lines.append(f"{target} --> {source} : result")

    while active:
        lines.append(f"deactivate {active.pop()}")

    return lines


# ── Derived call chain ───────────────────────────────────────────────


def _from_classes(
    class_name: str,
    method_name: Optional[str],
    involved_classes: Sequence[str],
    steps: Sequence[str],
) -> List[str]:
    classes = _order_classes(class_name, involved_classes)

    registry = notation.AliasRegistry()
    registry.register(CLIENT)
    for cls in classes:
        registry.register(cls)

    lines = registry.declarations()
    lines.append("")

    if not classes:
        return lines

    first = registry.alias(classes[0])
    entry_call = f"{method_name}()" if method_name else "request"
    lines.append(f"{CLIENT} -> {first} : {entry_call}")
    lines.append(f"activate {first}")

    for i in range(min(len(classes) - 1, len(steps))):
        caller = registry.alias(classes[i])
        callee = registry.alias(classes[i + 1])
        call = resolve_method_call(steps[i], classes[i + 1])
        lines.append(f"{caller} -> {callee} : {call}")
        lines.append(f"{callee} --> {caller} : result")

    lines.append(f"{first} --> {CLIENT} : response")
    lines.append(f"deactivate {first}")
    return lines


def _order_classes(class_name: str, involved_classes: Sequence[str]) -> List[str]:
    """Put the analysed class first, keeping the rest in mention order."""
    classes = [cls for cls in involved_classes if cls != CLIENT]
    if not class_name:
        return classes
    return [class_name] + [cls for cls in classes if cls != class_name]


def resolve_method_call(step: str, target_class: str) -> str:
    """Pick the call label for ``target_class`` from one execution step.

    Tries ``Target.method(params)``, then any bare ``method(params)``, then a
    guess from the target's name.
    """
    qualified = re.search(
        re.escape(target_class) + r"\.([a-zA-Z0-9_]+)\(([^)]*)\)", step
    )
    if qualified:
        return f"{qualified.group(1)}({qualified.group(2)})"

    bare = _BARE_CALL_RE.search(step)
    if bare:
        return f"{bare.group(1)}({bare.group(2)})"

    return infer_method_from_class_name(target_class)


def infer_method_from_class_name(class_name: str) -> str:
    lowered = class_name.lower()
    for needles, method in _INFERRED_METHODS:
        if any(needle in lowered for needle in needles):
            return method
    return _DEFAULT_METHOD
