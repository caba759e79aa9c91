#!/usr/bin/env python3
"""Tests for the validate_skill_bundle.py command line interface."""

import json
import subprocess
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
SCRIPT_PATH = PROJECT_ROOT / "scripts" / "validate_skill_bundle.py"

MANIFEST = """---
name: pdf-tools
description: Extracts text from PDF files. Use when the user asks about PDFs.
tags: [pdf, text]
---
# PDF Tools

Extract text and tables from PDF files, then summarise the results for review.

## Quick Start

Run the extractor against a PDF and read the generated summary.

## Notes

Large files are processed page by page.
"""


def run_validator(*args: str) -> subprocess.CompletedProcess[str]:
    """Run validate_skill_bundle.py with given args and return result."""
    cmd = [sys.executable, str(SCRIPT_PATH)] + list(args)
    return subprocess.run(cmd, capture_output=True, text=True, timeout=30)


def make_skill(tmp_path: Path, content: str = MANIFEST) -> Path:
    skill_dir = tmp_path / "pdf-tools"
    skill_dir.mkdir()
    (skill_dir / "SKILL.md").write_text(content, encoding="utf-8")
    return skill_dir


class TestHumanReport:
    """Tests for the line-oriented report."""

    def test_valid_bundle_exits_zero(self, tmp_path: Path) -> None:
        result = run_validator(str(make_skill(tmp_path)))
        assert result.returncode == 0
        assert "Validating: pdf-tools" in result.stdout
        assert "Validation passed." in result.stdout
        assert "error(s)" not in result.stdout
        assert "warning(s)" not in result.stdout

    def test_short_body_exits_one_with_full_report(self, tmp_path: Path) -> None:
        content = "---\nname: tiny\ndescription: Use when testing.\n---\n# Tiny\n"
        result = run_validator(str(make_skill(tmp_path, content)))
        assert result.returncode == 1
        assert "1 error(s):" in result.stdout
        assert "  x Content body must be at least 100 characters" in result.stdout
        assert "Security:" not in result.stdout
        assert result.stdout.rstrip().endswith("Validation FAILED.")

    def test_warnings_listed_after_errors(self, tmp_path: Path) -> None:
        content = MANIFEST.replace("Use when the user asks about PDFs.", "Reads PDFs.") + "\nrm -rf /\n"
        result = run_validator(str(make_skill(tmp_path, content)))
        assert result.returncode == 1
        assert result.stdout.index("error(s):") < result.stdout.index("warning(s):")
        assert '  ! Description should include a "when" clause' in result.stdout

    def test_identical_output_on_rerun(self, tmp_path: Path) -> None:
        skill_dir = make_skill(tmp_path, MANIFEST + "\neval(x)\n")
        (skill_dir / "tool.exe").write_bytes(b"MZ")
        first = run_validator(str(skill_dir))
        second = run_validator(str(skill_dir))
        assert first.stdout == second.stdout
        assert first.returncode == second.returncode == 1


class TestFatalErrors:
    """Tests for runs aborted before any report."""

    def test_missing_manifest(self, tmp_path: Path) -> None:
        result = run_validator(str(tmp_path))
        assert result.returncode == 1
        assert "SKILL.md not found" in result.stderr
        assert result.stdout == ""

    def test_unparsable_frontmatter(self, tmp_path: Path) -> None:
        skill_dir = make_skill(tmp_path, "---\nname: [oops\n---\n# Body\n")
        result = run_validator(str(skill_dir))
        assert result.returncode == 1
        assert "Failed to parse YAML frontmatter" in result.stderr
        assert result.stdout == ""


class TestJsonOutput:
    """Tests for --json and --record."""

    def test_json_output(self, tmp_path: Path) -> None:
        result = run_validator(str(make_skill(tmp_path)), "--json")
        assert result.returncode == 0
        output = json.loads(result.stdout)
        assert output == {"name": "pdf-tools", "passed": True, "errors": [], "warnings": []}

    def test_json_with_record(self, tmp_path: Path) -> None:
        skill_dir = make_skill(tmp_path)
        result = run_validator(str(skill_dir / "SKILL.md"), "--json", "--record")
        output = json.loads(result.stdout)
        assert output["record"]["name"] == "pdf-tools"
        assert output["record"]["title"] == "PDF Tools"
        assert output["record"]["tags"] == ["pdf", "text"]

    def test_record_after_human_report(self, tmp_path: Path) -> None:
        result = run_validator(str(make_skill(tmp_path)), "--record")
        assert result.returncode == 0
        assert "Publish record:" in result.stdout
        assert result.stdout.index("Validation passed.") < result.stdout.index("Publish record:")


class TestCLI:
    """Tests for CLI argument parsing."""

    def test_help_flag(self) -> None:
        result = run_validator("--help")
        assert result.returncode == 0
        assert "skill" in result.stdout.lower()

    def test_missing_argument_exits_nonzero(self) -> None:
        result = run_validator()
        assert result.returncode != 0
