#!/usr/bin/env python3
"""
Skill Bundle Validation - Common Module

Shared validation infrastructure for the skill bundle validators.
This module contains:
- Type definitions (Severity, Rule, Catalog, Bundle, ValidationResult)
- Policy limits and the rule catalogs used by the security scanner
- Manifest resolution (the fatal path of a validation run)
- Report formatting shared by every validator CLI

All individual validators should import from this module to ensure consistency.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

# =============================================================================
# Type Definitions
# =============================================================================

# Finding severity. Errors block publishing, warnings are advisory only.
Severity = Literal["error", "warning"]

# =============================================================================
# Exit Codes
# =============================================================================

EXIT_OK = 0  # No errors (warnings never affect the exit code)
EXIT_FAILED = 1  # Errors found, or the manifest could not be located/parsed

# =============================================================================
# Policy Limits
# =============================================================================

MANIFEST_FILENAME = "SKILL.md"

MAX_SKILL_FILE_SIZE = 50 * 1024
MAX_DIR_SIZE = 200 * 1024
MIN_CONTENT_LENGTH = 100
MAX_NAME_LENGTH = 64
MAX_DESCRIPTION_LENGTH = 1024

# Placeholder files accepted regardless of extension
IGNORED_FILENAMES = frozenset({".gitkeep"})

ALLOWED_EXTENSIONS = frozenset(
    {
        ".md",
        ".json",
        ".yaml",
        ".yml",
        ".sh",
        ".js",
        ".ts",
        ".py",
        ".txt",
    }
)

# =============================================================================
# Fatal Errors
# =============================================================================


class BundleError(Exception):
    """Base class for failures that abort a validation run without a report."""


class NotFoundError(BundleError):
    """The manifest file could not be located."""


class ParseError(BundleError):
    """The manifest front matter could not be parsed."""


# =============================================================================
# Rule Catalogs
# =============================================================================


@dataclass(frozen=True)
class Rule:
    """Single scanner rule.

    Attributes:
        pattern: Compiled regex, or a plain string matched as a literal substring
        label: Short human-readable name used in the finding message
        severity: Whether a match blocks publishing ("error") or not ("warning")
    """

    pattern: re.Pattern[str] | str
    label: str
    severity: Severity

    def matches(self, text: str) -> bool:
        """Return True if the rule occurs anywhere in text."""
        if isinstance(self.pattern, str):
            return self.pattern in text
        return self.pattern.search(text) is not None


@dataclass(frozen=True)
class Catalog:
    """Named group of rules sharing one severity and one message format."""

    name: str
    severity: Severity
    message: str
    rules: tuple[Rule, ...]

    def finding(self, rule: Rule) -> str:
        """Format the finding reported when rule matches."""
        return self.message.format(label=rule.label)


def build_catalog(
    name: str,
    severity: Severity,
    message: str,
    entries: list[tuple[str, str]],
    literal: bool = False,
) -> Catalog:
    """Build an immutable catalog from (pattern, label) pairs.

    Regex patterns are compiled with re.MULTILINE so ^/$ anchor at line
    boundaries. Matching is always case-sensitive.
    """
    rules = tuple(
        Rule(pattern if literal else re.compile(pattern, re.MULTILINE), label, severity) for pattern, label in entries
    )
    return Catalog(name, severity, message, rules)


DESTRUCTIVE_COMMANDS = build_catalog(
    "destructive-commands",
    "error",
    "Security: destructive command detected -- {label}",
    [
        # Bare root only: "rm -rf /tmp" must not match
        (r"rm\s+-rf\s+/(?!\w)", "rm -rf /"),
        (r"chmod\s+777", "chmod 777"),
        (r"mkfs\.", "mkfs (format disk)"),
        (r"dd\s+if=.*of=/dev/", "dd to device"),
        (r">\s*/dev/sd[a-z]", "write to disk device"),
    ],
)

CREDENTIAL_PATHS = build_catalog(
    "credential-paths",
    "error",
    "Security: references credential path -- {label}",
    [
        (path, path)
        for path in (
            "~/.ssh",
            "~/.aws",
            "~/.gnupg",
            "/etc/shadow",
            "/etc/passwd",
            "~/.config/gcloud",
            "~/.kube/config",
            "~/.npmrc",
        )
    ],
    literal=True,
)

SUSPICIOUS_EXECUTION = build_catalog(
    "suspicious-execution",
    "warning",
    "Security: {label} detected",
    [
        (r"eval\s*\(", "eval() usage"),
        (r"exec\s*\(", "exec() usage"),
        (r"curl\s+[^|]*\|\s*(?:ba)?sh", "curl | sh pattern"),
        (r"wget\s+[^|]*\|\s*(?:ba)?sh", "wget | sh pattern"),
    ],
)

SECURITY_CATALOGS = (DESTRUCTIVE_COMMANDS, CREDENTIAL_PATHS, SUSPICIOUS_EXECUTION)

# =============================================================================
# Bundle Resolution
# =============================================================================


@dataclass
class Bundle:
    """A skill bundle on disk.

    Attributes:
        root: Bundle root directory
        manifest: Path to the manifest file
        raw_text: Manifest text, filled by read_manifest()
        files: Member files found under root (directory bundles only)
        total_size: Sum of member file sizes in bytes
        is_directory: True when the bundle was given as a directory
    """

    root: Path
    manifest: Path
    is_directory: bool = False
    raw_text: str = ""
    files: list[Path] = field(default_factory=list)
    total_size: int = 0

    @property
    def display_name(self) -> str:
        """Name of the bundle root directory, used when the manifest has no name."""
        return self.root.resolve().name


def resolve_bundle(path: Path) -> Bundle:
    """Locate the manifest for a directory or direct file path.

    Raises:
        NotFoundError: If the resolved manifest does not exist
    """
    if path.is_dir():
        bundle = Bundle(root=path, manifest=path / MANIFEST_FILENAME, is_directory=True)
    else:
        bundle = Bundle(root=path.parent, manifest=path)

    if not bundle.manifest.is_file():
        raise NotFoundError(f"{MANIFEST_FILENAME} not found at {bundle.manifest}")
    return bundle


def read_manifest(bundle: Bundle) -> str:
    """Read the manifest text into the bundle and return it.

    Invalid UTF-8 sequences are replaced with U+FFFD rather than failing, so
    an encoding slip in the body still yields a full report.
    """
    try:
        bundle.raw_text = bundle.manifest.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise BundleError(f"Cannot read {bundle.manifest} ({e.strerror})") from e
    return bundle.raw_text


# =============================================================================
# Validation Result
# =============================================================================


@dataclass
class ValidationResult:
    """Findings of one validation run.

    Errors and warnings keep the order in which checks reported them.
    The run passes if and only if there are no errors.
    """

    name: str = ""
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def error(self, message: str) -> None:
        """Add a blocking finding."""
        self.errors.append(message)

    def warning(self, message: str) -> None:
        """Add a non-blocking finding."""
        self.warnings.append(message)

    def add(self, severity: Severity, message: str) -> None:
        if severity == "error":
            self.error(message)
        else:
            self.warning(message)

    @property
    def passed(self) -> bool:
        return not self.errors

    @property
    def exit_code(self) -> int:
        return EXIT_OK if self.passed else EXIT_FAILED

    def merge(self, other: ValidationResult) -> None:
        """Append findings from another result, preserving order."""
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "passed": self.passed,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


# =============================================================================
# Output Formatting
# =============================================================================

SEPARATOR = "─" * 40


def format_report(result: ValidationResult) -> str:
    """Render the line-oriented human report for a result."""
    lines = ["", f"Validating: {result.name}", SEPARATOR]

    if result.errors:
        lines.append(f"\n{len(result.errors)} error(s):")
        lines.extend(f"  x {err}" for err in result.errors)

    if result.warnings:
        lines.append(f"\n{len(result.warnings)} warning(s):")
        lines.extend(f"  ! {warn}" for warn in result.warnings)

    lines.append("\nValidation passed." if result.passed else "\nValidation FAILED.")
    return "\n".join(lines)


def print_report(result: ValidationResult) -> None:
    """Print the human report to stdout."""
    print(format_report(result))
