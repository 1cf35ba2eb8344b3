# Lazy imports: `import flowloom.core` stays cheap, and the diagrams package
# (which loads httpx and the settings loader) is only imported when one of
# the names below is first accessed.

__all__ = [
    "FlowDiagramService",
    "FlowModel",
    "extract_flow_model",
    "generate_activity_diagram",
    "generate_sequence_diagram",
    "render_puml",
    "get_settings",
]

_IMPORT_MAP = {
    "FlowDiagramService": ".diagrams.service",
    "FlowModel": ".diagrams.models",
    "extract_flow_model": ".diagrams.extractor",
    "generate_activity_diagram": ".diagrams.activity",
    "generate_sequence_diagram": ".diagrams.sequence",
    "render_puml": ".diagrams.renderer",
    "get_settings": ".config.config_loader",
}


def __getattr__(name):
    if name in _IMPORT_MAP:
        import importlib
        module = importlib.import_module(_IMPORT_MAP[name], __package__)
        return getattr(module, name)
    raise AttributeError(f"module 'flowloom.core' has no attribute {name}")
