"""
Tests for detection and version extraction (devtools_installer/detection.py).
"""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from devtools_installer.config import ToolSpec
from devtools_installer.detection import (
    VERSION_FLAGS,
    VERSION_MATCHERS,
    Detection,
    detect,
    extract_version,
    get_tool_version,
    probe_version,
)


class TestExtractVersion:
    """Tests for extract_version()."""

    @pytest.mark.parametrize("output,expected", [
        ("version v1.2.3", "v1.2.3"),
        ("amass - v4.5.6", "4.5.6"),
        ("go1.23.3 linux/amd64", "1.23.3"),
        ("Version: v2.0.0", "v2.0.0"),
        ("hello world", "hello world"),
        ("", ""),
        ("   \n  ", ""),
    ])
    def test_samples(self, output, expected):
        assert extract_version(output) == expected

    def test_go_version_output(self):
        """Test the real `go version` output."""
        assert extract_version("go version go1.23.3 linux/amd64\n") == "1.23.3"

    def test_version_word_case_insensitive(self):
        assert extract_version("Subfinder VERSION v2.6.7") == "v2.6.7"

    def test_specific_pattern_wins(self):
        """Test 'Version: v1.2.3' resolves via a capture pattern, not a generic one."""
        assert extract_version("Version: v1.2.3") == "v1.2.3"

    def test_prefers_v_prefixed_over_bare(self):
        """Test v-prefixed versions shadow bare numbers later in the text."""
        assert extract_version("build 10.0.1, tool v1.2.3") == "v1.2.3"

    def test_fallback_first_line(self):
        """Test unrecognized output falls back to the first trimmed line."""
        assert extract_version("\n  nmap dev build\nsecond line\n") == "nmap dev build"

    def test_matcher_order(self):
        """Test the matcher order is stable."""
        assert [name for name, _ in VERSION_MATCHERS] == [
            "version-word",
            "amass",
            "v-semver",
            "semver",
            "go-semver",
            "version-label",
        ]


class TestProbeVersion:
    """Tests for probe_version()."""

    @patch("devtools_installer.detection.subprocess.run")
    def test_success(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="tool 1.0.0\n")
        assert probe_version("tool", "--version") == "tool 1.0.0\n"
        args, kwargs = mock_run.call_args
        assert args[0] == ["tool", "--version"]
        assert kwargs["stderr"] == subprocess.STDOUT

    @patch("devtools_installer.detection.subprocess.run")
    def test_nonzero_exit(self, mock_run):
        mock_run.return_value = MagicMock(returncode=2, stdout="unknown flag")
        assert probe_version("tool", "-ver") is None

    @patch("devtools_installer.detection.subprocess.run")
    def test_spawn_error(self, mock_run):
        mock_run.side_effect = FileNotFoundError("tool")
        assert probe_version("tool", "--version") is None

    @patch("devtools_installer.detection.subprocess.run")
    def test_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(["tool"], 5)
        assert probe_version("tool", "--version") is None


class TestGetToolVersion:
    """Tests for get_tool_version()."""

    @patch("devtools_installer.detection.subprocess.run")
    def test_fixed_version_skips_version_query(self, mock_run):
        """Test a fixed catalog version is returned without spawning."""
        assert get_tool_version("go", ToolSpec(version="1.23.3")) == "1.23.3"
        mock_run.assert_not_called()

    @patch("devtools_installer.detection.subprocess.run")
    def test_tries_flags_in_order(self, mock_run):
        """Test failing flags are skipped until one answers."""
        mock_run.side_effect = [
            MagicMock(returncode=1, stdout=""),
            MagicMock(returncode=2, stdout=""),
            MagicMock(returncode=0, stdout="amass - v4.2.0"),
        ]
        assert get_tool_version("amass") == "4.2.0"
        flags = [c.args[0][1] for c in mock_run.call_args_list]
        assert flags == list(VERSION_FLAGS[:3])

    @patch("devtools_installer.detection.subprocess.run")
    def test_empty_output_moves_on(self, mock_run):
        """Test a zero exit with empty output does not stop probing."""
        mock_run.side_effect = [
            MagicMock(returncode=0, stdout=""),
            MagicMock(returncode=0, stdout="v0.9.1"),
        ]
        assert get_tool_version("tool") == "v0.9.1"

    @patch("devtools_installer.detection.subprocess.run")
    def test_custom_flag_only(self, mock_run):
        """Test version_flag replaces the default flag list."""
        mock_run.return_value = MagicMock(returncode=1, stdout="")
        assert get_tool_version("subfinder", ToolSpec(version_flag="-version")) == ""
        assert mock_run.call_count == 1
        assert mock_run.call_args.args[0] == ["subfinder", "-version"]

    @patch("devtools_installer.detection.subprocess.run")
    def test_unknown_when_all_fail(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stdout="")
        assert get_tool_version("tool") == ""
        assert mock_run.call_count == len(VERSION_FLAGS)


class TestDetect:
    """Tests for detect()."""

    @patch("devtools_installer.detection.subprocess.run")
    @patch("devtools_installer.detection.shutil.which")
    def test_absent(self, mock_which, mock_run):
        mock_which.return_value = None
        result = detect("amass")
        assert result == Detection(tool_name="amass", present=False)
        mock_run.assert_not_called()

    @patch("devtools_installer.detection.subprocess.run")
    @patch("devtools_installer.detection.shutil.which")
    def test_present_with_fixed_version(self, mock_which, mock_run):
        mock_which.return_value = "/usr/local/go/bin/go"
        result = detect("go", ToolSpec(version="1.23.3"))
        assert result.present is True
        assert result.version == "1.23.3"
        assert result.path == "/usr/local/go/bin/go"
        mock_run.assert_not_called()

    @patch("devtools_installer.detection.subprocess.run")
    @patch("devtools_installer.detection.shutil.which")
    def test_present_version_unknown(self, mock_which, mock_run):
        mock_which.return_value = "/usr/bin/weird"
        mock_run.return_value = MagicMock(returncode=1, stdout="")
        result = detect("weird")
        assert result.present is True
        assert result.version == ""

    def test_to_dict(self):
        data = Detection(tool_name="go", present=True, version="1.23.3", path="/usr/bin/go").to_dict()
        assert data == {"tool_name": "go", "present": True, "version": "1.23.3", "path": "/usr/bin/go"}
