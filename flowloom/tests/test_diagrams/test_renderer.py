"""Tests for PlantUML rendering: JAR pipe, HTTP fallback and URL encoding.

Neither Java nor the network is touched: the JAR check, ``subprocess.run``
and ``httpx.get`` are patched per test.
"""

import subprocess
from unittest.mock import MagicMock, patch

import httpx
import pytest

from flowloom.core.diagrams import renderer
from flowloom.core.diagrams.renderer import (
    RenderError,
    _ensure_smetana,
    plantuml_encode,
    render_puml,
)


FAKE_PNG = b"\x89PNG\r\n\x1a\nrendered"
FAKE_SVG = b'<?xml version="1.0"?><svg xmlns="http://www.w3.org/2000/svg"></svg>'
SEQUENCE = "@startuml\nA -> B : ping()\n@enduml"
ACTIVITY = "@startuml\nstart\n:Do it;\nstop\n@enduml"


def _response(content, status_code=200):
    response = MagicMock()
    response.content = content
    response.status_code = status_code
    return response


@pytest.fixture
def no_jar():
    with patch.object(renderer, "_check_jar_available", return_value=False):
        yield


# ── Encoding ────────────────────────────────────────────────────────────


class TestPlantumlEncode:
    def test_deterministic(self):
        assert plantuml_encode(SEQUENCE) == plantuml_encode(SEQUENCE)

    def test_url_safe_alphabet(self):
        encoded = plantuml_encode(SEQUENCE)
        assert encoded
        assert set(encoded) <= set(renderer._PLANTUML_ALPHABET)

    def test_length_multiple_of_four(self):
        assert len(plantuml_encode(ACTIVITY)) % 4 == 0


# ── HTTP fallback ───────────────────────────────────────────────────────


class TestHttpRendering:
    def test_png_from_server(self, no_jar):
        with patch.object(renderer.httpx, "get", return_value=_response(FAKE_PNG)) as get:
            image = render_puml(SEQUENCE, server_url="http://plantuml.local/plantuml/")

        assert image == FAKE_PNG
        url = get.call_args.args[0]
        assert url == f"http://plantuml.local/plantuml/png/{plantuml_encode(SEQUENCE)}"

    def test_svg_from_server(self, no_jar):
        with patch.object(renderer.httpx, "get", return_value=_response(FAKE_SVG)) as get:
            image = render_puml(SEQUENCE, output_format="svg", server_url="http://p.local")

        assert image == FAKE_SVG
        assert "/svg/" in get.call_args.args[0]

    def test_image_with_error_status_is_used(self, no_jar):
        with patch.object(renderer.httpx, "get", return_value=_response(FAKE_PNG, 400)):
            assert render_puml(SEQUENCE, server_url="http://p.local") == FAKE_PNG

    def test_connection_error(self, no_jar):
        with patch.object(renderer.httpx, "get", side_effect=httpx.ConnectError("refused")):
            with pytest.raises(RenderError):
                render_puml(SEQUENCE, server_url="http://p.local")

    def test_error_status_without_image(self, no_jar):
        with patch.object(renderer.httpx, "get", return_value=_response(b"oops", 500)):
            with pytest.raises(RenderError, match="500"):
                render_puml(SEQUENCE, server_url="http://p.local")

    def test_unexpected_body(self, no_jar):
        with patch.object(renderer.httpx, "get", return_value=_response(b"<html>hi</html>")):
            with pytest.raises(RenderError):
                render_puml(SEQUENCE, server_url="http://p.local")

    def test_render_error_is_runtime_error(self):
        assert issubclass(RenderError, RuntimeError)


# ── Local JAR ───────────────────────────────────────────────────────────


class TestJarRendering:
    @pytest.fixture
    def jar(self, tmp_path, monkeypatch):
        jar_path = tmp_path / "plantuml.jar"
        jar_path.write_bytes(b"")
        monkeypatch.setattr(renderer, "_resolved_jar_path", jar_path)
        monkeypatch.setattr(renderer, "_has_graphviz", lambda: True)
        with patch.object(renderer, "_check_jar_available", return_value=True):
            yield jar_path

    def test_pipe_render(self, jar):
        completed = MagicMock(stdout=FAKE_PNG, stderr=b"", returncode=0)
        with patch.object(renderer.subprocess, "run", return_value=completed) as run, \
                patch.object(renderer.httpx, "get") as get:
            assert render_puml(SEQUENCE) == FAKE_PNG

        cmd = run.call_args.args[0]
        assert cmd[-2:] == ["-tpng", "-pipe"]
        assert str(jar) in cmd
        assert run.call_args.kwargs["input"] == SEQUENCE.encode("utf-8")
        get.assert_not_called()

    def test_timeout_falls_back_to_http(self, jar):
        with patch.object(
            renderer.subprocess, "run",
            side_effect=subprocess.TimeoutExpired(cmd="java", timeout=1),
        ), patch.object(renderer.httpx, "get", return_value=_response(FAKE_PNG)) as get:
            assert render_puml(SEQUENCE, server_url="http://p.local") == FAKE_PNG
        get.assert_called_once()

    def test_no_image_falls_back_to_http(self, jar):
        completed = MagicMock(stdout=b"", stderr=b"Syntax error", returncode=1)
        with patch.object(renderer.subprocess, "run", return_value=completed), \
                patch.object(renderer.httpx, "get", return_value=_response(FAKE_PNG)) as get:
            assert render_puml(SEQUENCE, server_url="http://p.local") == FAKE_PNG
        get.assert_called_once()


# ── Arguments and layout ────────────────────────────────────────────────


class TestRenderArguments:
    def test_unsupported_format(self):
        with pytest.raises(ValueError, match="Unsupported output format"):
            render_puml(SEQUENCE, output_format="gif")

    def test_smetana_added_without_graphviz(self, monkeypatch):
        monkeypatch.setattr(renderer, "_has_graphviz", lambda: False)
        assert _ensure_smetana(SEQUENCE).startswith("@startuml\n!pragma layout smetana\n")

    def test_activity_left_alone(self, monkeypatch):
        monkeypatch.setattr(renderer, "_has_graphviz", lambda: False)
        assert _ensure_smetana(ACTIVITY) == ACTIVITY

    def test_untouched_with_graphviz(self, monkeypatch):
        monkeypatch.setattr(renderer, "_has_graphviz", lambda: True)
        assert _ensure_smetana(SEQUENCE) == SEQUENCE
