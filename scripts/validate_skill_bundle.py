#!/usr/bin/env python3
"""
Skill Bundle Validation - Bundle Validator

Decides whether a skill bundle (a directory holding SKILL.md plus optional
supporting files, or a single SKILL.md) is well-formed and safe to publish.

Checks, in report order:
    1. Manifest size (before parsing)
    2. Front matter fields (name, description)
    3. Body structure (length, headings, usage section)
    4. Security patterns in the raw manifest text
    5. Directory policy (allowed file types, total size) - directory bundles only

A missing manifest or unparsable front matter aborts the run without a report.
Every other finding is collected, so one run lists everything to fix.

Usage:
    uv run python scripts/validate_skill_bundle.py path/to/skill/
    uv run python scripts/validate_skill_bundle.py path/to/skill/SKILL.md
    uv run python scripts/validate_skill_bundle.py path/to/skill/ --json --record

Exit codes:
    0 - No errors (warnings may still be reported)
    1 - Errors found, or the manifest could not be located/parsed
"""

from __future__ import annotations

import argparse
import json
import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from skill_publish_record import build_publish_record, is_store_identifier
from skill_validation_common import (
    ALLOWED_EXTENSIONS,
    IGNORED_FILENAMES,
    MANIFEST_FILENAME,
    MAX_DESCRIPTION_LENGTH,
    MAX_DIR_SIZE,
    MAX_NAME_LENGTH,
    MAX_SKILL_FILE_SIZE,
    MIN_CONTENT_LENGTH,
    Bundle,
    BundleError,
    ParseError,
    ValidationResult,
    print_report,
    read_manifest,
    resolve_bundle,
)
from validate_bundle_security import scan_security

FRONTMATTER_DELIMITER = "---"

H1_PATTERN = re.compile(r"^# .+", re.MULTILINE)
H2_PATTERN = re.compile(r"^## .+", re.MULTILINE)
USAGE_SECTION_PATTERN = re.compile(
    r"^##\s+(Quick\s*Start|Usage|Getting\s*Started|How\s*to\s*Use)",
    re.MULTILINE | re.IGNORECASE,
)
WHEN_CLAUSE_PATTERN = re.compile(r"\bwhen\b", re.IGNORECASE)

YAML_BOOL_TAG = "tag:yaml.org,2002:bool"


class FrontmatterLoader(yaml.SafeLoader):
    """SafeLoader that resolves only true/false as booleans.

    YAML 1.1 also reads bare yes/no/on/off as booleans, which turns names
    like `on` into non-strings. Those stay plain strings here.
    """


FrontmatterLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != YAML_BOOL_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
FrontmatterLoader.add_implicit_resolver(
    YAML_BOOL_TAG,
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)


@dataclass
class SkillValidationReport(ValidationResult):
    """Validation result with the parsed manifest it was computed from."""

    skill_path: str = ""
    bundle_name: str = ""
    frontmatter: dict[str, Any] = field(default_factory=dict)
    body: str = ""


# =============================================================================
# Manifest Parsing
# =============================================================================


def parse_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Split manifest text into front matter and body.

    The front matter is the block between a leading '---' line and the next
    '---' line. Text without a leading delimiter has no front matter.

    Returns:
        Tuple of (frontmatter_dict, body_content)

    Raises:
        ParseError: If the block is unterminated, is not valid YAML, or is
            not a mapping
    """
    text = content.removeprefix("\ufeff")
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != FRONTMATTER_DELIMITER:
        return {}, text

    for index in range(1, len(lines)):
        if lines[index].rstrip() == FRONTMATTER_DELIMITER:
            block = "".join(lines[1:index])
            body = "".join(lines[index + 1 :])
            break
    else:
        raise ParseError("Failed to parse YAML frontmatter: missing closing ---")

    try:
        frontmatter = yaml.load(block, Loader=FrontmatterLoader)  # noqa: S506 -- SafeLoader subclass
    except yaml.YAMLError as e:
        raise ParseError(f"Failed to parse YAML frontmatter: {e}") from e

    if frontmatter is None:
        frontmatter = {}
    if not isinstance(frontmatter, dict):
        raise ParseError(f"Failed to parse YAML frontmatter: expected a mapping, got {type(frontmatter).__name__}")
    return frontmatter, body


# =============================================================================
# Front Matter Checks
# =============================================================================


def validate_name_field(frontmatter: dict[str, Any], report: ValidationResult) -> None:
    """Validate the 'name' frontmatter field."""
    name = frontmatter.get("name")
    if not name:
        report.error('Missing required field: "name" in frontmatter')
    elif not isinstance(name, str):
        report.error('"name" must be a string')
    elif len(name) > MAX_NAME_LENGTH:
        report.error(f'"name" exceeds {MAX_NAME_LENGTH} characters')

    if isinstance(name, str) and name and not is_store_identifier(name):
        report.warning('"name" should use only lowercase letters, digits and hyphens')


def validate_description_field(frontmatter: dict[str, Any], report: ValidationResult) -> None:
    """Validate the 'description' frontmatter field."""
    desc = frontmatter.get("description")
    if not desc:
        report.error('Missing required field: "description" in frontmatter')
        return

    if not isinstance(desc, str):
        report.error('"description" must be a string')
        return

    if len(desc) > MAX_DESCRIPTION_LENGTH:
        report.error(f'"description" exceeds {MAX_DESCRIPTION_LENGTH} characters')

    if not WHEN_CLAUSE_PATTERN.search(desc):
        report.warning('Description should include a "when" clause')


def check_metadata(frontmatter: dict[str, Any]) -> ValidationResult:
    """Run all front matter checks and return their findings."""
    result = ValidationResult()
    validate_name_field(frontmatter, result)
    validate_description_field(frontmatter, result)
    return result


# =============================================================================
# Body Checks
# =============================================================================


def check_content(body: str) -> ValidationResult:
    """Validate the manifest body (text after the front matter).

    Heading checks only run once the body meets the minimum length, so an
    almost-empty body is reported as a single error.
    """
    result = ValidationResult()

    if len(body.strip()) < MIN_CONTENT_LENGTH:
        result.error(f"Content body must be at least {MIN_CONTENT_LENGTH} characters")
        # Heading checks are skipped on purpose; other check groups still run
        return result

    if not H1_PATTERN.search(body):
        result.error("Must have at least one H1 heading")

    if len(H2_PATTERN.findall(body)) < 2:
        result.warning("Should have at least 2 H2 sections")

    if not USAGE_SECTION_PATTERN.search(body):
        result.warning('Consider adding a "Quick Start" or "Usage" section')

    return result


# =============================================================================
# File and Directory Policy
# =============================================================================


def check_manifest_size(bundle: Bundle) -> ValidationResult:
    """Validate the manifest does not exceed MAX_SKILL_FILE_SIZE."""
    result = ValidationResult()
    file_size = bundle.manifest.stat().st_size
    if file_size > MAX_SKILL_FILE_SIZE:
        result.error(
            f"{MANIFEST_FILENAME} exceeds {MAX_SKILL_FILE_SIZE // 1024}KB limit ({(file_size + 512) // 1024}KB)"
        )
    return result


def collect_bundle_files(bundle: Bundle) -> None:
    """Walk the bundle root and record every file and the total size.

    Files that cannot be stat-ed (removed mid-walk, broken links) stay in the
    file list but add nothing to the size total.
    """
    bundle.files = []
    bundle.total_size = 0
    for root, dirs, files in os.walk(bundle.root):
        dirs.sort()
        for filename in sorted(files):
            file_path = Path(root) / filename
            bundle.files.append(file_path)
            try:
                bundle.total_size += file_path.stat().st_size
            except OSError:
                continue


def is_allowed_file(file_path: Path) -> bool:
    return file_path.suffix.lower() in ALLOWED_EXTENSIONS or file_path.name in IGNORED_FILENAMES


def check_directory(bundle: Bundle) -> ValidationResult:
    """Validate file types and total size of a directory bundle."""
    result = ValidationResult()
    if not bundle.is_directory:
        return result

    collect_bundle_files(bundle)

    for file_path in bundle.files:
        if not is_allowed_file(file_path):
            result.error(f"Disallowed file type: {file_path.relative_to(bundle.root).as_posix()}")

    if bundle.total_size > MAX_DIR_SIZE:
        result.warning(f"Directory exceeds {MAX_DIR_SIZE // 1024}KB recommended limit")

    return result


# =============================================================================
# Main Validation Function
# =============================================================================


def validate_bundle(skill_path: Path) -> SkillValidationReport:
    """Validate a skill bundle.

    Args:
        skill_path: Path to the skill directory or directly to its manifest

    Returns:
        SkillValidationReport with all findings

    Raises:
        NotFoundError: If the manifest does not exist
        ParseError: If the front matter cannot be parsed
    """
    bundle = resolve_bundle(skill_path)
    report = SkillValidationReport(skill_path=str(skill_path), bundle_name=bundle.display_name)

    report.merge(check_manifest_size(bundle))

    raw_text = read_manifest(bundle)
    frontmatter, body = parse_frontmatter(raw_text)
    report.frontmatter = frontmatter
    report.body = body
    report.name = str(frontmatter.get("name") or report.bundle_name)

    report.merge(check_metadata(frontmatter))
    report.merge(check_content(body))
    report.merge(scan_security(raw_text))
    report.merge(check_directory(bundle))

    return report


# =============================================================================
# CLI Main
# =============================================================================


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Validate a skill bundle before publishing")
    parser.add_argument("skill_path", type=Path, help="Path to the skill directory or its SKILL.md")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument(
        "--record",
        action="store_true",
        help="Also output the publish record draft built from the front matter",
    )
    args = parser.parse_args()

    try:
        report = validate_bundle(args.skill_path)
    except BundleError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    record = None
    if args.record:
        record = build_publish_record(report.frontmatter, report.body, report.bundle_name)

    if args.json:
        output = report.to_dict()
        if record is not None:
            output["record"] = record.to_dict()
        print(json.dumps(output, indent=2))
    else:
        print_report(report)
        if record is not None:
            print("\nPublish record:")
            print(json.dumps(record.to_dict(), indent=2))

    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
