"""Data contracts for flow-analysis diagram generation.

The extractor builds a FlowModel once per request; both synthesizers read it
and discard it. Everything here is immutable so a model can be shared
between the two synthesizers without copying.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple


class FlowElementKind(Enum):
    """Line prefixes recognised in a ``**Flow Logic:**`` section."""
    START = "START"
    DECISION = "DECISION"
    LOOP = "LOOP"
    PROCESS = "PROCESS"
    END = "END"


class DiagramKind(Enum):
    """The two artifacts produced per request."""
    SEQUENCE = "sequence"
    ACTIVITY = "activity"

    @property
    def file_suffix(self) -> str:
        return "-sequence" if self is DiagramKind.SEQUENCE else "-flow"

    @property
    def label(self) -> str:
        return "Sequence Diagram" if self is DiagramKind.SEQUENCE else "Flow Diagram"


@dataclass(frozen=True)
class FlowLogicElement:
    """One structured step of a Flow Logic section.

    ``exception_name`` is only ever set for DECISION elements.
    """
    kind: FlowElementKind
    description: str
    exception_name: Optional[str] = None


@dataclass(frozen=True)
class SequenceInteraction:
    """One ``Source -> Target.method(params)`` call."""
    source: str
    target: str
    method: str
    parameters: str = ""

    @property
    def call_label(self) -> str:
        return f"{self.method}({self.parameters})"


@dataclass(frozen=True)
class FlowModel:
    """Structured view of an analysis text.

    Each field is independently optional. Consumers must cope with a model
    where every field is empty.
    """
    flow_elements: Tuple[FlowLogicElement, ...] = ()
    sequence_interactions: Tuple[SequenceInteraction, ...] = ()
    involved_classes: Tuple[str, ...] = ()
    execution_steps: Tuple[str, ...] = ()
    exception_types: Tuple[str, ...] = ()  # de-duplicated, first-appearance order

    @property
    def is_empty(self) -> bool:
        return not (
            self.flow_elements
            or self.sequence_interactions
            or self.involved_classes
            or self.execution_steps
            or self.exception_types
        )


@dataclass(frozen=True)
class DiagramArtifact:
    """PlantUML source for one diagram plus its on-disk base name."""
    kind: DiagramKind
    source_text: str
    file_base_name: str

    @property
    def stem(self) -> str:
        return f"{self.file_base_name}{self.kind.file_suffix}"

    @property
    def source_file_name(self) -> str:
        return f"{self.stem}.puml"

    def image_file_name(self, output_format: str = "png") -> str:
        return f"{self.stem}.{output_format}"


@dataclass(frozen=True)
class DiagramLink:
    label: str
    path: str


@dataclass(frozen=True)
class DiagramBundle:
    """Artifacts written for one request and the links to their images.

    ``links`` only lists artifacts that rendered successfully. ``notice`` is
    a user-facing message when some or all of them failed.
    """
    project_name: str
    directory: Optional[str]
    artifacts: Tuple[DiagramArtifact, ...] = ()
    links: Tuple[DiagramLink, ...] = ()
    notice: Optional[str] = None

    @property
    def manifest(self) -> List[Tuple[str, str]]:
        return [(link.label, link.path) for link in self.links]
