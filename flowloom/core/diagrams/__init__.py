"""Flow-analysis diagram generation.

Turns LLM-written code flow analysis text into two PlantUML diagrams:
  Activity (flow): decisions, loops, exception exits
  Sequence: ordered inter-component calls with activations

Public API:
  FlowDiagramService — orchestrator that writes and renders the bundle
  extract_flow_model — analysis text -> FlowModel
  generate_activity_diagram / generate_sequence_diagram — FlowModel -> PlantUML
"""

from .activity import generate_activity_diagram
from .extractor import extract_flow_model
from .models import FlowModel
from .sequence import generate_sequence_diagram
from .service import FlowDiagramService

__all__ = [
    "FlowDiagramService",
    "FlowModel",
    "extract_flow_model",
    "generate_activity_diagram",
    "generate_sequence_diagram",
]
