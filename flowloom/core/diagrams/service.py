"""FlowDiagramService — builds the sequence + flow diagram bundle for one analysis.

For each request:
  - extract a FlowModel from the analysis text (once)
  - synthesize sequence and activity PlantUML from that model
  - write ``<base>-sequence.puml`` / ``<base>-flow.puml`` under
    ``<resource_dir>/<project>/`` and render each to an image beside it
  - return links to the images that rendered

Diagram generation is decoration on top of the textual analysis, so nothing
here raises to the caller: failed artifacts are left out of the manifest and
a notice explains what happened.
"""

import functools
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from ..config.config_loader import get_settings
from ..constants import (
    DEFAULT_PROJECT_NAME,
    DIAGRAM_SOURCE_EXTENSION,
    NOTICE_ALL_FAILED,
    NOTICE_PARTIAL,
    TIMESTAMP_FORMAT,
)
from .activity import generate_activity_diagram
from .extractor import extract_flow_model
from .models import DiagramArtifact, DiagramBundle, DiagramKind, DiagramLink
from .renderer import render_puml
from .sequence import generate_sequence_diagram

logger = logging.getLogger(__name__)

Renderer = Callable[[str], bytes]

_UNSAFE_FILE_CHARS_RE = re.compile(r"[^A-Za-z0-9_$.-]")

_LISTED_EXTENSIONS = (DIAGRAM_SOURCE_EXTENSION, ".png", ".svg")
_READABLE_EXTENSIONS = (DIAGRAM_SOURCE_EXTENSION, ".svg")


def safe_file_component(value: Optional[str]) -> str:
    """Reduce a name to characters that are safe in a single path component."""
    if not value:
        return ""
    return _UNSAFE_FILE_CHARS_RE.sub("", value).strip(".")


def build_base_name(class_name: str, method_name: Optional[str], timestamp: str) -> str:
    """``<ClassName><MethodName>_<yyyyMMdd_HHmmss>``; links reference this verbatim."""
    stem = safe_file_component(class_name) + safe_file_component(method_name)
    return f"{stem}_{timestamp}"


class FlowDiagramService:
    """Generates, stores and serves flow-analysis diagram bundles."""

    def __init__(
        self,
        resource_dir: Optional[str] = None,
        link_prefix: Optional[str] = None,
        output_format: Optional[str] = None,
        renderer: Optional[Renderer] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize FlowDiagramService.

        Args:
            resource_dir: Root for per-project folders (default from settings)
            link_prefix: URL prefix for manifest links (default from settings)
            output_format: Rendered image format, "png" or "svg"
            renderer: ``render(source_text) -> bytes``; defaults to the
                PlantUML JAR/HTTP renderer
            clock: Returns the timestamp used in file names
        """
        settings = get_settings()
        self._resource_dir = Path(resource_dir or settings.resource_dir)
        self._link_prefix = (link_prefix or settings.link_prefix).rstrip("/")
        self._output_format = output_format or settings.output_format
        self._renderer = renderer or functools.partial(
            render_puml, output_format=self._output_format
        )
        self._clock = clock or datetime.now

    @property
    def resource_dir(self) -> Path:
        return self._resource_dir

    def generate(
        self,
        project_name: str,
        class_name: str,
        method_name: Optional[str],
        raw_analysis_text: Optional[str],
    ) -> Tuple[List[Tuple[str, str]], Optional[str]]:
        """Generate both diagrams and return ``(manifest, notice)``.

        ``manifest`` lists ``(label, path)`` for rendered images only;
        ``notice`` is None when everything rendered.
        """
        bundle = self.generate_bundle(project_name, class_name, method_name, raw_analysis_text)
        return bundle.manifest, bundle.notice

    def generate_bundle(
        self,
        project_name: str,
        class_name: str,
        method_name: Optional[str],
        raw_analysis_text: Optional[str],
    ) -> DiagramBundle:
        """Generate, write and render both diagrams for one analysis."""
        project = safe_file_component(project_name) or DEFAULT_PROJECT_NAME
        timestamp = self._clock().strftime(TIMESTAMP_FORMAT)
        base_name = build_base_name(class_name, method_name, timestamp)

        try:
            artifacts = self.build_artifacts(class_name, method_name, raw_analysis_text, base_name)
        except Exception as e:
            logger.error("Diagram synthesis failed for %s.%s: %s", class_name, method_name, e)
            return DiagramBundle(project_name=project, directory=None, notice=NOTICE_ALL_FAILED)

        directory = self._resource_dir / project
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Cannot create diagram directory %s: %s", directory, e)
            return DiagramBundle(
                project_name=project,
                directory=str(directory),
                artifacts=artifacts,
                notice=NOTICE_ALL_FAILED,
            )

        links = []
        for artifact in artifacts:
            link = self._store_artifact(directory, project, artifact)
            if link is not None:
                links.append(link)

        if len(links) == len(artifacts):
            notice = None
        elif links:
            notice = NOTICE_PARTIAL
        else:
            notice = NOTICE_ALL_FAILED

        logger.info(
            "Generated %d/%d flow diagrams for %s.%s in %s",
            len(links), len(artifacts), class_name, method_name, directory,
        )
        return DiagramBundle(
            project_name=project,
            directory=str(directory),
            artifacts=artifacts,
            links=tuple(links),
            notice=notice,
        )

    @staticmethod
    def build_artifacts(
        class_name: str,
        method_name: Optional[str],
        raw_analysis_text: Optional[str],
        base_name: str,
    ) -> Tuple[DiagramArtifact, DiagramArtifact]:
        """Extract once and synthesize both diagrams from the same model."""
        model = extract_flow_model(raw_analysis_text)
        return (
            DiagramArtifact(
                kind=DiagramKind.SEQUENCE,
                source_text=generate_sequence_diagram(class_name, method_name, model),
                file_base_name=base_name,
            ),
            DiagramArtifact(
                kind=DiagramKind.ACTIVITY,
                source_text=generate_activity_diagram(class_name, method_name, model),
                file_base_name=base_name,
            ),
        )

    @staticmethod
    def format_links(bundle: DiagramBundle) -> str:
        """Markdown block appended under the textual analysis."""
        if not bundle.links:
            return bundle.notice or NOTICE_ALL_FAILED

        lines = ["**Visual Diagrams:**", "Have a look at:"]
        for link in bundle.links:
            lines.append(f'<a href="{link.path}">{link.label}</a>')
        if bundle.notice:
            lines.append("")
            lines.append(bundle.notice)
        return "\n".join(lines)

    # ── Stored artifacts ──────────────────────────────────────────────

    def list_diagrams(self, project_name: str) -> List[str]:
        """File names of stored diagram sources and images for a project."""
        directory = self._project_dir(project_name)
        if not directory.is_dir():
            return []
        return sorted(
            p.name for p in directory.iterdir()
            if p.is_file() and p.suffix in _LISTED_EXTENSIONS
        )

    def resolve_artifact_path(self, project_name: str, file_name: str) -> Path:
        """Path of a stored artifact.

        Raises:
            ValueError: If either component is empty or escapes the project folder.
        """
        directory = self._project_dir(project_name)
        if (
            not file_name
            or file_name != Path(file_name).name
            or file_name in (".", "..")
        ):
            raise ValueError(f"Invalid diagram file name: {file_name!r}")

        path = directory / file_name
        if directory.resolve() not in path.resolve().parents:
            raise ValueError(f"Invalid diagram file name: {file_name!r}")
        return path

    def read_diagram_source(self, project_name: str, file_name: str) -> str:
        """Text of a stored ``.puml`` (or ``.svg``) artifact.

        Raises:
            ValueError: For invalid or non-text file names.
            FileNotFoundError: If the artifact does not exist.
        """
        path = self.resolve_artifact_path(project_name, file_name)
        if path.suffix not in _READABLE_EXTENSIONS:
            raise ValueError(f"Not a diagram source file: {file_name!r}")
        return path.read_text(encoding="utf-8")

    # ── Internal helpers ──────────────────────────────────────────────

    def _project_dir(self, project_name: str) -> Path:
        project = safe_file_component(project_name)
        if not project or project != project_name:
            raise ValueError(f"Invalid project name: {project_name!r}")
        return self._resource_dir / project

    def _store_artifact(
        self, directory: Path, project: str, artifact: DiagramArtifact,
    ) -> Optional[DiagramLink]:
        """Write source, render, write image. Returns None if any step failed."""
        try:
            (directory / artifact.source_file_name).write_text(
                artifact.source_text, encoding="utf-8"
            )
            image = self._renderer(artifact.source_text)
            image_name = artifact.image_file_name(self._output_format)
            (directory / image_name).write_bytes(image)
        except Exception as e:
            logger.warning(
                "Failed to produce %s diagram %s: %s",
                artifact.kind.value, artifact.stem, e,
            )
            return None

        return DiagramLink(
            label=artifact.kind.label,
            path=f"{self._link_prefix}/{project}/{image_name}",
        )
