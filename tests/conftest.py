"""Pytest configuration for the pseudoconv test suite."""

import sys
from pathlib import Path

# Run against the working tree without an install
sys.path.insert(0, str(Path(__file__).parent.parent))


def parse_test_file(path: Path) -> list[tuple[str, str, str]]:
    """Parse a .tests file into (name, input, expected) tuples.

    Format:

        === test name
        <input lines>
        ---
        <expected lines>
        ---
    """
    lines = path.read_text(encoding="utf-8").split("\n")
    result: list[tuple[str, str, str]] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("=== "):
            test_name = line[4:].strip()
            i += 1
            input_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                input_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            expected_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                expected_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            test_input = "\n".join(input_lines)
            expected = "\n".join(expected_lines).strip("\n")
            result.append((test_name, test_input, expected))
        else:
            i += 1
    return result


def discover_tests(directory: Path) -> list[tuple[str, str, str, str]]:
    """All cases under a directory as (test_id, input, expected, language).

    The language is the file stem's prefix: java_*.tests or typescript_*.tests.
    """
    results = []
    for test_file in sorted(directory.glob("*.tests")):
        language = test_file.stem.split("_", 1)[0]
        for name, input_code, expected in parse_test_file(test_file):
            test_id = f"{test_file.stem}/{name}"
            results.append((test_id, input_code, expected, language))
    return results
