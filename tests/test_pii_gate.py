"""Runs the PII log gate over the source tree."""

import importlib.util
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture(scope="module")
def gate():
    spec = importlib.util.spec_from_file_location("gate_security_pii", ROOT / "scripts" / "gate_security_pii.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_source_tree_passes(gate):
    assert gate.check_tree(ROOT / "src" / "laarikhojo") == []


def test_flags_unredacted_phone(gate, tmp_path):
    source = tmp_path / "bad.py"
    source.write_text(
        'logger.info("lookup", extra={"extra_fields": {"n": body.phone_number}})\n'
        'logger.info(f"got {msg.text}")\n'
        "print(payload)\n"
    )

    errors = gate.check_file(source)

    assert any("'phone_number'" in e for e in errors)
    assert any("f-string" in e for e in errors)
    assert any("print()" in e for e in errors)


def test_redacted_call_allowed(gate, tmp_path):
    source = tmp_path / "ok.py"
    source.write_text(
        'logger.info("lookup", extra={"extra_fields": {"h": hash_phone(body.phone_number)}})\n'
    )
    assert gate.check_file(source) == []
