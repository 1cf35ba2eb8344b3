"""Shared constants for FlowLoom.

This module contains constants that are used across multiple modules
to avoid duplication and ensure consistency.
"""

# =============================================================================
# Analysis Section Headings
# =============================================================================

# Headings written by the analysis prompt, as they appear in the markdown
# (``**Heading:**``)
SECTION_INVOLVED_CLASSES = "Involved Classes"
SECTION_EXECUTION_STEPS = "Execution Steps"
SECTION_FLOW_LOGIC = "Flow Logic"
SECTION_SEQUENCE_INTERACTIONS = "Sequence Interactions"
SECTION_EXCEPTION_HANDLING = "Exception Handling"

# =============================================================================
# Artifact Layout
# =============================================================================

# Root directory for per-project diagram folders
DEFAULT_RESOURCE_DIR = "FlowloomResource"

# URL prefix the link manifest points at (served by api/routes/diagrams.py)
DEFAULT_LINK_PREFIX = "/api/flow/diagram"

# File-name timestamp, sortable, second precision
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

DIAGRAM_SOURCE_EXTENSION = ".puml"
DEFAULT_OUTPUT_FORMAT = "png"

# Project folder used when the requested name sanitizes to nothing
DEFAULT_PROJECT_NAME = "default"

# =============================================================================
# User-facing Notices
# =============================================================================

NOTICE_ALL_FAILED = (
    "**Note:** Visual diagrams could not be generated due to a technical issue, "
    "but the analysis above provides comprehensive insights."
)

NOTICE_PARTIAL = (
    "**Note:** Some visual diagrams could not be generated; "
    "the available diagrams are linked above."
)
