#!/usr/bin/env python3
"""Gate: vendor phones and message content never reach the logs.

Fails if, anywhere under src/:
- print( appears in runtime code
- a logger message is an f-string (interpolated values bypass redaction)
- a logger call names a sensitive value without a redaction helper

Only the line a logger call starts on is inspected.

Usage:
    python scripts/gate_security_pii.py
"""

import re
import sys
from pathlib import Path

# Names that carry vendor PII or raw webhook content
SENSITIVE_KEYWORDS = (
    "payload",
    "body_bytes",
    "request.body",
    "request.json",
    "phone_number",
    "contact_number",
    "msg.sender",
    "msg.text",
    "message_text",
)

REDACTION_HELPERS = ("safe_log_context", "redact_value", "redact_string", "hash_phone")

_LOG_METHODS = r"logger\.(?:debug|info|warning|error|critical|exception)\s*\("
_PRINT = re.compile(r"\bprint\s*\(")
_LOG_CALL = re.compile(_LOG_METHODS)
_LOG_FSTRING = re.compile(_LOG_METHODS + r"\s*f[\"']")


def _line_violations(code: str) -> list[str]:
    found = []
    if _PRINT.search(code):
        found.append("print() not allowed in runtime code")

    if not _LOG_CALL.search(code):
        return found

    if _LOG_FSTRING.search(code):
        found.append("logger message must not be an f-string")

    if not any(helper in code for helper in REDACTION_HELPERS):
        lowered = code.lower()
        found.extend(
            f"logger call with '{keyword}' must use redaction (safe_log_context/hash_phone)"
            for keyword in SENSITIVE_KEYWORDS
            if keyword in lowered
        )
    return found


def check_file(filepath: Path) -> list[str]:
    """Violations in one file, as `path:line: message` strings."""
    try:
        lines = filepath.read_text(encoding="utf-8").splitlines()
    except UnicodeDecodeError:
        return []

    errors = []
    for lineno, line in enumerate(lines, start=1):
        code = line.split("#", 1)[0]
        if code.strip():
            errors.extend(f"{filepath}:{lineno}: {v}" for v in _line_violations(code))
    return errors


def check_tree(src_dir: Path) -> list[str]:
    errors: list[str] = []
    for pyfile in sorted(src_dir.rglob("*.py")):
        errors.extend(check_file(pyfile))
    return errors


def main() -> int:
    src_dir = Path("src")
    if not src_dir.exists():
        src_dir = Path(__file__).parent.parent / "src"
    if not src_dir.exists():
        sys.stderr.write("Error: src directory not found\n")
        return 1

    errors = check_tree(src_dir)
    if errors:
        sys.stderr.write("PII gate FAILED - violations found:\n")
        sys.stderr.writelines(f"  {err}\n" for err in errors)
        return 1

    sys.stdout.write("PII gate PASSED\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
