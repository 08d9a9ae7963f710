"""
End-to-end integration tests for installation workflows.

Tests complete runs from catalog loading through real subprocess execution.
"""

import io
import subprocess
import sys
from unittest.mock import patch

import pytest

from devtools_installer import Console, Installer, OutputStyle, load_catalog

# Commands below rely on POSIX shell utilities
pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="Requires POSIX sh/true/false")

MISSING_TOOL = "devtools-installer-e2e-missing-tool"


def write_catalog(tmp_path, text):
    path = tmp_path / "installer.yaml"
    path.write_text(text)
    return str(path)


def run_installer(catalog, **kwargs):
    stream = io.StringIO()
    summary = Installer(catalog, Console(stream, OutputStyle.plain()), **kwargs).run()
    return summary, stream.getvalue()


class TestSingleToolInstallation:
    """Integration tests for single tool installation."""

    def test_single_succeeding_command(self, tmp_path):
        """Test one missing tool, one method, one command: 1/1 and one subprocess."""
        path = write_catalog(
            tmp_path,
            f"tool_list: [{MISSING_TOOL}]\n"
            f"tools:\n"
            f"  {MISSING_TOOL}:\n"
            f"    methods:\n"
            f"      - name: noop\n"
            f"        commands: ['true']\n",
        )
        catalog = load_catalog(path)

        with patch("devtools_installer.installer.subprocess.Popen", wraps=subprocess.Popen) as spy:
            summary, output = run_installer(catalog)

        assert "1/1 tools installed" in output
        assert spy.call_count == 1
        assert summary.results[0].method_used == "noop"

    def test_fallback_method_runs_real_commands(self, tmp_path):
        """Test a failing method falls back and later methods are untouched."""
        marker = tmp_path / "third-method-ran"
        created = tmp_path / "second-method-ran"
        path = write_catalog(
            tmp_path,
            f"tool_list: [{MISSING_TOOL}]\n"
            f"tools:\n"
            f"  {MISSING_TOOL}:\n"
            f"    methods:\n"
            f"      - name: broken\n"
            f"        commands: ['false', 'touch {marker}']\n"
            f"      - name: working\n"
            f"        commands: ['true', 'touch {created}']\n"
            f"      - name: never\n"
            f"        commands: ['touch {marker}']\n",
        )

        summary, output = run_installer(load_catalog(path))

        assert summary.results[0].method_used == "working"
        assert created.exists()
        assert not marker.exists()
        assert "Failed to install" in output
        assert "1/1 tools installed" in output

    def test_version_placeholder_reaches_process(self, tmp_path):
        """Test ${version} is substituted before the command runs."""
        out_file = tmp_path / "version.txt"
        path = write_catalog(
            tmp_path,
            f"tool_list: [{MISSING_TOOL}]\n"
            f"tools:\n"
            f"  {MISSING_TOOL}:\n"
            f"    version: '1.23.3'\n"
            f"    methods:\n"
            f"      - name: sh\n"
            f"        commands:\n"
            f"          - [sh, -c, 'echo go${{version}}.tar.gz > {out_file}']\n",
        )

        run_installer(load_catalog(path))

        assert out_file.read_text().strip() == "go1.23.3.tar.gz"

    def test_all_methods_failed(self, tmp_path):
        path = write_catalog(
            tmp_path,
            f"tool_list: [{MISSING_TOOL}, another-{MISSING_TOOL}]\n"
            f"tools:\n"
            f"  {MISSING_TOOL}:\n"
            f"    methods:\n"
            f"      - name: a\n"
            f"        commands: ['false']\n"
            f"      - name: b\n"
            f"        commands: ['{MISSING_TOOL}-not-a-binary']\n",
        )

        summary, output = run_installer(load_catalog(path))

        assert [r.status for r in summary.results] == ["failed", "failed"]
        assert f"all installation methods failed for {MISSING_TOOL}" in output
        assert "failed to start command" in output
        assert "0/2 tools installed" in output


class TestIdempotence:
    """Present tools are never reinstalled."""

    def test_present_tool_twice(self, tmp_path):
        path = write_catalog(
            tmp_path,
            "tool_list: [sh]\n"
            "tools:\n"
            "  sh:\n"
            "    version: system\n"
            "    methods:\n"
            "      - name: must-not-run\n"
            "        commands: ['false']\n",
        )
        catalog = load_catalog(path)

        with patch("devtools_installer.installer.subprocess.Popen", wraps=subprocess.Popen) as spy:
            for _ in range(2):
                summary, output = run_installer(catalog)
                assert summary.installed == 1
                assert "│ system" in output

        assert spy.call_count == 0
