"""PlantUML text -> image rendering with dual-mode support.

Primary:  Local JAR via `java -jar plantuml.jar -tpng -pipe` (no size limits).
Fallback: PlantUML HTTP server with deflate + custom base64 URL encoding.

The local JAR is preferred because long diagrams exceed URL length limits on
the HTTP server. The JAR renders via stdin/stdout pipe with no such constraint.

JAR location resolution order:
  1. PLANTUML_JAR_PATH env var / `plantuml.jar_path` in config/flowloom.yaml
  2. tools/plantuml/plantuml.jar (repo-local)
"""

import logging
import shutil
import subprocess
import zlib
from pathlib import Path
from typing import Optional

import httpx

from ..config.config_loader import get_settings

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("png", "svg")

_PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


class RenderError(RuntimeError):
    """Raised when neither the JAR nor the HTTP server produced an image."""


# ---------------------------------------------------------------------------
# JAR availability detection (cached per-process)
# ---------------------------------------------------------------------------

_DEFAULT_JAR_PATH = Path(__file__).parents[3] / "tools" / "plantuml" / "plantuml.jar"

_jar_availability_checked = False
_jar_available = False
_resolved_jar_path: Optional[Path] = None
_graphviz_available: Optional[bool] = None


def _resolve_jar_path() -> Optional[Path]:
    """Return the PlantUML JAR path if it exists, else None."""
    configured = get_settings().plantuml_jar_path
    if configured:
        p = Path(configured)
        return p if p.is_file() else None
    return _DEFAULT_JAR_PATH if _DEFAULT_JAR_PATH.is_file() else None


def _check_jar_available() -> bool:
    """Check once whether local JAR rendering is possible."""
    global _jar_availability_checked, _jar_available, _resolved_jar_path

    if _jar_availability_checked:
        return _jar_available

    _jar_availability_checked = True

    _resolved_jar_path = _resolve_jar_path()
    if _resolved_jar_path is None:
        logger.info("PlantUML JAR not found — using HTTP fallback")
        _jar_available = False
        return False

    if shutil.which("java") is None:
        logger.info(
            "Java not in PATH — PlantUML JAR present but unusable, using HTTP fallback"
        )
        _jar_available = False
        return False

    logger.info("PlantUML local JAR available at %s", _resolved_jar_path)
    _jar_available = True
    return True


def _has_graphviz() -> bool:
    """Check once whether Graphviz (dot) is available on PATH."""
    global _graphviz_available
    if _graphviz_available is None:
        _graphviz_available = shutil.which("dot") is not None
        if not _graphviz_available:
            logger.info(
                "Graphviz (dot) not found — PlantUML will use built-in Smetana layout engine"
            )
    return _graphviz_available


def _ensure_smetana(puml: str) -> str:
    """Inject '!pragma layout smetana' when Graphviz is unavailable.

    Activity diagrams use PlantUML's own layout engine, and the pragma can
    break them, so diagrams with a ``start`` line are left alone.
    """
    if _has_graphviz():
        return puml
    if "\nstart\n" in puml:
        return puml
    pragma = "!pragma layout smetana"
    if pragma in puml:
        return puml
    return puml.replace("@startuml", f"@startuml\n{pragma}", 1)


def _looks_like(output_format: str, data: bytes) -> bool:
    if output_format == "png":
        return data.startswith(_PNG_MAGIC)
    head = data[:500].lstrip()
    return head.startswith(b"<") and b"<svg" in head


# ---------------------------------------------------------------------------
# Local JAR rendering
# ---------------------------------------------------------------------------


def _render_via_jar(puml: str, output_format: str) -> Optional[bytes]:
    """Render PlantUML source via local JAR (stdin -> stdout pipe).

    Returns image bytes on success, None on failure (caller should fall back).
    """
    assert _resolved_jar_path is not None

    puml = _ensure_smetana(puml)
    timeout = get_settings().render_timeout

    cmd = [
        "java",
        "-Djava.awt.headless=true",
        "-jar",
        str(_resolved_jar_path),
        f"-t{output_format}",
        "-pipe",
    ]

    try:
        result = subprocess.run(
            cmd,
            input=puml.encode("utf-8"),
            capture_output=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.warning("PlantUML JAR timed out after %ss — falling back to HTTP", timeout)
        return None
    except OSError as e:
        logger.warning("PlantUML JAR execution failed: %s — falling back to HTTP", e)
        return None

    # PlantUML writes an image even for syntax errors (the image shows the error)
    if _looks_like(output_format, result.stdout):
        if result.returncode != 0:
            logger.debug(
                "PlantUML JAR returned exit code %d but produced an image — using it",
                result.returncode,
            )
        return result.stdout

    stderr = result.stderr.decode("utf-8", errors="replace").strip()
    logger.warning(
        "PlantUML JAR produced no %s (exit=%d, stderr=%s) — falling back to HTTP",
        output_format,
        result.returncode,
        stderr[:300] if stderr else "(empty)",
    )
    return None


# ---------------------------------------------------------------------------
# HTTP server rendering (fallback)
# ---------------------------------------------------------------------------

_PLANTUML_ALPHABET = (
    "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz-_"
)


def _encode6bit(b: int) -> str:
    """Encode a 6-bit value to PlantUML's custom base64 character."""
    return _PLANTUML_ALPHABET[b & 0x3F]


def _encode3bytes(b1: int, b2: int, b3: int) -> str:
    """Encode 3 bytes into 4 PlantUML base64 characters."""
    c1 = b1 >> 2
    c2 = ((b1 & 0x3) << 4) | (b2 >> 4)
    c3 = ((b2 & 0xF) << 2) | (b3 >> 6)
    c4 = b3 & 0x3F
    return _encode6bit(c1) + _encode6bit(c2) + _encode6bit(c3) + _encode6bit(c4)


def plantuml_encode(text: str) -> str:
    """Encode PlantUML text using deflate + custom base64 for URL embedding."""
    data = zlib.compress(text.encode("utf-8"))[2:-4]  # raw deflate

    result = []
    for i in range(0, len(data), 3):
        if i + 2 < len(data):
            result.append(_encode3bytes(data[i], data[i + 1], data[i + 2]))
        elif i + 1 < len(data):
            result.append(_encode3bytes(data[i], data[i + 1], 0))
        else:
            result.append(_encode3bytes(data[i], 0, 0))

    return "".join(result)


def _render_via_http(puml: str, output_format: str, server_url: Optional[str] = None) -> bytes:
    """Render PlantUML source via HTTP server (GET with encoded URL).

    Raises RenderError on failure.
    """
    settings = get_settings()
    server = (server_url or settings.plantuml_server_url).rstrip("/")

    encoded = plantuml_encode(puml)
    url = f"{server}/{output_format}/{encoded}"

    logger.debug("Rendering PlantUML via HTTP %s (encoded len=%d)", server, len(encoded))

    try:
        response = httpx.get(url, timeout=settings.http_timeout, follow_redirects=True)
    except httpx.RequestError as e:
        raise RenderError(f"PlantUML server request failed: {e}") from e

    body = response.content
    if _looks_like(output_format, body):
        if response.status_code != 200:
            logger.warning(
                "PlantUML server returned %d but with %s content — using it",
                response.status_code,
                output_format,
            )
        return body

    if response.status_code != 200:
        raise RenderError(
            f"PlantUML server returned {response.status_code} with non-{output_format} body"
        )

    raise RenderError(f"PlantUML server returned unexpected content: {body[:200]!r}")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def render_puml(
    puml: str,
    output_format: str = "png",
    server_url: Optional[str] = None,
) -> bytes:
    """Render PlantUML text to an image.

    Tries local JAR first (no size limits), falls back to HTTP server.

    Args:
        puml: PlantUML source text (including @startuml/@enduml).
        output_format: "png" or "svg".
        server_url: PlantUML server base URL for HTTP fallback. Defaults to
                    the configured server.

    Returns:
        Image bytes.

    Raises:
        RenderError: If both JAR and HTTP rendering fail.
        ValueError: If output_format is not supported.
    """
    if output_format not in SUPPORTED_FORMATS:
        raise ValueError(
            f"Unsupported output format '{output_format}'. "
            f"Must be one of: {', '.join(SUPPORTED_FORMATS)}"
        )

    if _check_jar_available():
        image = _render_via_jar(puml, output_format)
        if image is not None:
            logger.debug("Rendered via local JAR (%d bytes %s)", len(image), output_format)
            return image

    return _render_via_http(puml, output_format, server_url)
