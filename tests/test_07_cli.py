"""CLI tests for the pseudoconv entry point.

Test cases live in 07_cli/*.tests files. Format:

    === test name
    args: --lang typescript
    source code here
    (stdin for the converter)
    ---
    exit: 0
    stdout-contains: DECLARE x : INTEGER
    stderr-empty: true
    ---

Special directives in the input section:
    args:           CLI arguments (first line, required)
    stdin-bytes:    hex-encoded raw bytes instead of text (e.g. "ff fe")

Assertion directives in the expected section:
    exit:             exact exit code
    stderr-contains:  stderr must contain substring
    stderr-empty:     stderr must be empty
    stdout-contains:  stdout must contain substring
    stdout-empty:     stdout must be empty
"""

import subprocess
import sys
from pathlib import Path

import pytest

from pseudoconv.cli import main

CLI_DIR = Path(__file__).parent / "07_cli"
ROOT_DIR = Path(__file__).parent.parent


def parse_cli_test_file(path: Path) -> list[tuple[str, dict]]:
    """Parse a .tests file into (name, spec) tuples."""
    lines = path.read_text(encoding="utf-8").split("\n")
    result: list[tuple[str, dict]] = []
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
            result.append((test_name, _parse_spec(input_lines, expected_lines)))
        else:
            i += 1
    return result


def _parse_spec(input_lines: list[str], expected_lines: list[str]) -> dict:
    spec: dict = {
        "args": [],
        "stdin": None,
        "stdin_bytes": None,
        "assertions": [],
    }
    body_start = 0
    if input_lines and input_lines[0].startswith("args:"):
        args_str = input_lines[0][5:].strip()
        spec["args"] = args_str.split() if args_str else []
        body_start = 1
    remaining = input_lines[body_start:]
    if remaining and remaining[0].startswith("stdin-bytes:"):
        spec["stdin_bytes"] = bytes.fromhex(remaining[0][len("stdin-bytes:") :].strip())
    else:
        spec["stdin"] = "\n".join(remaining)
    for line in expected_lines:
        line = line.strip()
        if not line:
            continue
        if line.startswith("exit:"):
            spec["assertions"].append(("exit", int(line[5:].strip())))
        elif line.startswith("stderr-contains:"):
            spec["assertions"].append(("stderr-contains", line[16:].strip()))
        elif line.startswith("stderr-empty:"):
            spec["assertions"].append(("stderr-empty", None))
        elif line.startswith("stdout-contains:"):
            spec["assertions"].append(("stdout-contains", line[16:].strip()))
        elif line.startswith("stdout-empty:"):
            spec["assertions"].append(("stdout-empty", None))
    return spec


def discover_cli_tests() -> list[tuple[str, dict]]:
    results = []
    for test_file in sorted(CLI_DIR.glob("*.tests")):
        for name, spec in parse_cli_test_file(test_file):
            results.append((f"{test_file.stem}/{name}", spec))
    return results


def run_cli(spec: dict) -> subprocess.CompletedProcess[bytes]:
    """Run the pseudoconv CLI from a test spec."""
    cmd = [sys.executable, "-m", "pseudoconv", *spec["args"]]
    if spec["stdin_bytes"] is not None:
        stdin_data = spec["stdin_bytes"]
    elif spec["stdin"] is not None:
        stdin_data = spec["stdin"].encode()
    else:
        stdin_data = b""
    return subprocess.run(cmd, input=stdin_data, capture_output=True, cwd=ROOT_DIR)


def check_assertions(
    result: subprocess.CompletedProcess[bytes], assertions: list[tuple]
) -> None:
    for kind, value in assertions:
        if kind == "exit":
            assert result.returncode == value, (
                f"expected exit {value}, got {result.returncode}"
                f"\nstderr: {result.stderr.decode(errors='replace')}"
            )
        elif kind == "stderr-contains":
            actual = result.stderr.decode(errors="replace")
            assert value in actual, f"expected stderr to contain {value!r}, got {actual!r}"
        elif kind == "stderr-empty":
            assert result.stderr == b"", f"expected empty stderr, got {result.stderr!r}"
        elif kind == "stdout-contains":
            actual = result.stdout.decode(errors="replace")
            assert value in actual, f"expected stdout to contain {value!r}, got {actual!r}"
        elif kind == "stdout-empty":
            assert result.stdout == b"", f"expected empty stdout, got {result.stdout[:200]!r}"


def pytest_generate_tests(metafunc):
    if "cli_spec" in metafunc.fixturenames:
        params = [pytest.param(spec, id=test_id) for test_id, spec in discover_cli_tests()]
        metafunc.parametrize("cli_spec", params)


def test_cli(cli_spec: dict) -> None:
    result = run_cli(cli_spec)
    check_assertions(result, cli_spec["assertions"])


# ── In-process: files on disk ────────────────────────────────


def test_language_from_extension(tmp_path, capsys):
    src = tmp_path / "hello.ts"
    src.write_text('let greeting: string = "hi";\n', encoding="utf-8")
    assert main([str(src)]) == 0
    out = capsys.readouterr().out
    assert out == 'DECLARE greeting : STRING\ngreeting ← "hi"\n'


def test_output_file(tmp_path, capsys):
    src = tmp_path / "Main.java"
    src.write_text("int x = 5;\n", encoding="utf-8")
    dest = tmp_path / "out.txt"
    assert main([str(src), "-o", str(dest)]) == 0
    assert capsys.readouterr().out == ""
    assert dest.read_text(encoding="utf-8") == "DECLARE x : INTEGER\nx ← 5\n"


def test_missing_file(tmp_path, capsys):
    missing = tmp_path / "nope.java"
    assert main([str(missing)]) == 1
    assert "No such file or directory" in capsys.readouterr().err


def test_diagnostics_name_the_file(tmp_path, capsys):
    src = tmp_path / "Bad.java"
    src.write_text("int x = ;\n", encoding="utf-8")
    assert main([str(src)]) == 1
    err = capsys.readouterr().err
    assert str(src) + ":1:9: error [SYNTAX_ERROR] expected expression" in err
    assert "int x = ;\n        ^" in err


def test_indent_option(tmp_path, capsys):
    src = tmp_path / "If.java"
    src.write_text("if (true) {\n    x = 1;\n}\n", encoding="utf-8")
    assert main(["--indent", "4", str(src)]) == 0
    assert capsys.readouterr().out == "IF TRUE THEN\n    x ← 1\nENDIF\n"


def test_no_comments(tmp_path, capsys):
    src = tmp_path / "Main.java"
    src.write_text(
        "public class Main {\n"
        "    public static void main(String[] args) {\n"
        '        System.out.println("hi");\n'
        "    }\n"
        "}\n",
        encoding="utf-8",
    )
    assert main(["--no-comments", str(src)]) == 0
    assert capsys.readouterr().out == 'OUTPUT "hi"\n'
