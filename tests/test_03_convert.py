"""End-to-end conversion tests: source in, pseudocode out."""

import signal
from pathlib import Path

import pytest

from conftest import discover_tests
from pseudoconv import convert

CONVERT_TIMEOUT = 5


def _timeout_handler(signum, frame):
    raise TimeoutError("convert() timed out")


signal.signal(signal.SIGALRM, _timeout_handler)

CONVERT_DIR = Path(__file__).parent / "03_convert"


def pytest_generate_tests(metafunc):
    """Parametrize tests over conversion test files."""
    if "convert_input" in metafunc.fixturenames:
        params = [
            pytest.param(input_code, expected, language, id=test_id)
            for test_id, input_code, expected, language in discover_tests(CONVERT_DIR)
        ]
        metafunc.parametrize("convert_input,convert_expected,convert_language", params)


def test_convert(convert_input: str, convert_expected: str, convert_language: str):
    """Verify the converter produces the expected pseudocode."""
    try:
        signal.alarm(CONVERT_TIMEOUT)
        result = convert(convert_input, convert_language)
    finally:
        signal.alarm(0)
    if not result.success:
        pytest.fail("conversion failed: " + "; ".join(str(d) for d in result.errors()))
    assert result.pseudocode.rstrip("\n") == convert_expected
