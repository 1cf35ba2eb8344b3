"""PlantUML building blocks shared by the activity and sequence synthesizers."""

import re
from typing import Dict, List, Optional

THEME = """
skinparam backgroundColor #FEFEFE
skinparam shadowing false
skinparam defaultFontSize 12
skinparam roundCorner 8
skinparam sequence {
  ArrowColor #495057
  LifeLineBorderColor #6C757D
  ParticipantBackgroundColor #F8F9FA
  ParticipantBorderColor #495057
  ParticipantFontColor #212529
}
skinparam activity {
  BackgroundColor #F8F9FA
  BorderColor #495057
  FontColor #212529
  ArrowColor #495057
  DiamondBackgroundColor #E9ECEF
  DiamondBorderColor #495057
}
""".strip()

_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")
_THROW_CLAUSE_RE = re.compile(r"\s*[,;:-]?\s*\bthrows?\s+[A-Z][a-zA-Z0-9]*Exception\b.*$")


def header(diagram_label: str, class_name: str, method_name: Optional[str]) -> List[str]:
    """Opening lines: ``@startuml``, theme and ``title``."""
    subject = class_name or "Unknown"
    if method_name:
        subject = f"{subject}.{method_name}"
    return ["@startuml", THEME, "", f"title {diagram_label} - {subject}", ""]


def footer() -> List[str]:
    return ["", "@enduml"]


def action(text: str) -> str:
    return f":{text};"


def condition(text: str) -> str:
    """Turn a description into an ``if (...)`` label.

    Drops a trailing ``throw XException`` clause (it becomes the no-branch
    instead), parentheses that would unbalance the ``if (...)`` delimiters,
    and trailing question marks so exactly one ``?`` is appended.
    """
    cleaned = _THROW_CLAUSE_RE.sub("", text)
    cleaned = cleaned.replace("(", "").replace(")", "")
    cleaned = cleaned.strip().rstrip("?").strip()
    return f"{cleaned or 'Condition'}?"


def strip_alias(name: str) -> str:
    """Diagram-safe identifier: alphanumerics only."""
    return _NON_ALNUM_RE.sub("", name)


def display_label(name: str) -> str:
    """Participant display name safe inside PlantUML double quotes."""
    return name.replace('"', "'").strip() or "?"


class AliasRegistry:
    """Assigns stable participant aliases to display names.

    Distinct display names that strip to the same alias are disambiguated
    with a numeric suffix (``Foo``, ``Foo2``, ...). Registration order decides
    who keeps the bare alias, so output stays deterministic.
    """

    def __init__(self):
        self._aliases: Dict[str, str] = {}
        self._taken: Dict[str, str] = {}

    def register(self, display_name: str) -> str:
        if display_name in self._aliases:
            return self._aliases[display_name]

        base = strip_alias(display_name) or "P"
        alias = base
        counter = 2
        while alias in self._taken:
            alias = f"{base}{counter}"
            counter += 1

        self._aliases[display_name] = alias
        self._taken[alias] = display_name
        return alias

    def alias(self, display_name: str) -> str:
        return self._aliases.get(display_name) or self.register(display_name)

    def __contains__(self, display_name: str) -> bool:
        return display_name in self._aliases

    def declarations(self) -> List[str]:
        """``participant`` lines in registration order."""
        return [
            f'participant "{display_label(name)}" as {alias}'
            for name, alias in self._aliases.items()
        ]
