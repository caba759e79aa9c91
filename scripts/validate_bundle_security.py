#!/usr/bin/env python3
"""
Skill Bundle Validation - Security Module

Scans the raw text of a skill manifest (front matter included) against the
security rule catalogs defined in skill_validation_common:

1. Destructive commands (rm -rf /, chmod 777, mkfs, dd/redirects to devices) - errors
2. Credential store paths (~/.ssh, ~/.aws, /etc/shadow, ...) - errors
3. Suspicious execution (eval(), exec(), curl | sh, wget | sh) - warnings

Matching is lexical and case-sensitive. Obfuscated or indirect forms of the
same operations are not detected.

Usage:
    uv run python scripts/validate_bundle_security.py path/to/skill/
    uv run python scripts/validate_bundle_security.py path/to/skill/SKILL.md --json

Exit codes:
    0 - No security errors (warnings may still be reported)
    1 - Security errors found, or the manifest could not be read
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from skill_validation_common import (
    SECURITY_CATALOGS,
    BundleError,
    Catalog,
    ValidationResult,
    print_report,
    read_manifest,
    resolve_bundle,
)


def scan_catalog(text: str, catalog: Catalog, result: ValidationResult) -> int:
    """Record one finding per matching rule of catalog. Returns count of matches."""
    matches = 0
    for rule in catalog.rules:
        if rule.matches(text):
            result.add(rule.severity, catalog.finding(rule))
            matches += 1
    return matches


def scan_security(text: str, catalogs: tuple[Catalog, ...] = SECURITY_CATALOGS) -> ValidationResult:
    """Scan text against every catalog, in catalog order.

    Args:
        text: Raw manifest text
        catalogs: Catalogs to apply (defaults to all security catalogs)

    Returns:
        ValidationResult holding the security findings only
    """
    result = ValidationResult()
    for catalog in catalogs:
        scan_catalog(text, catalog, result)
    return result


def main() -> int:
    """CLI entry point for standalone security scanning."""
    parser = argparse.ArgumentParser(description="Security scan of a skill manifest")
    parser.add_argument("skill_path", type=Path, help="Path to the skill directory or manifest file")
    parser.add_argument("--json", action="store_true", help="Output results as JSON")
    args = parser.parse_args()

    try:
        bundle = resolve_bundle(args.skill_path)
        text = read_manifest(bundle)
    except BundleError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    result = scan_security(text)
    result.name = bundle.display_name

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_report(result)

    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
