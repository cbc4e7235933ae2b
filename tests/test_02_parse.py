"""Pytest-based parser tests."""

import signal
from pathlib import Path

import pytest

from conftest import discover_tests
from pseudoconv.errors import ConversionError
from pseudoconv.frontend.parse import parse

PARSE_TIMEOUT = 5


def _timeout_handler(signum, frame):
    raise TimeoutError("parse() timed out")


signal.signal(signal.SIGALRM, _timeout_handler)

PARSE_DIR = Path(__file__).parent / "02_parse"


def pytest_generate_tests(metafunc):
    """Parametrize tests over parse test files.

    Expected is one of: 'ok', 'error: <message substring>'
    """
    if "parse_input" in metafunc.fixturenames:
        params = [
            pytest.param(input_code, expected, language, id=test_id)
            for test_id, input_code, expected, language in discover_tests(PARSE_DIR)
        ]
        metafunc.parametrize("parse_input,parse_expected,parse_language", params)


def test_parse(parse_input: str, parse_expected: str, parse_language: str):
    """Verify parser produces expected result."""
    parse_error: ConversionError | None = None
    try:
        signal.alarm(PARSE_TIMEOUT)
        parse(parse_input, parse_language)
    except ConversionError as e:
        parse_error = e
    finally:
        signal.alarm(0)

    if parse_expected == "ok":
        if parse_error is not None:
            pytest.fail(f"Expected ok, got parse error: {parse_error}")
    elif parse_expected.startswith("error:"):
        expected_msg = parse_expected[6:].strip()
        if parse_error is None:
            pytest.fail(f"Expected error containing '{expected_msg}', but parsing succeeded")
        assert expected_msg.lower() in str(parse_error).lower()
    else:
        pytest.fail(f"Unknown expected format: {parse_expected}")
