"""pseudoconv CLI: convert a Java or TypeScript file to pseudocode."""

from __future__ import annotations

import logging
import sys

from .convert import convert
from .options import ConversionOptions, normalize_language

USAGE: str = """\
pseudoconv [OPTIONS] [FILE]

Convert Java or TypeScript source to IGCSE pseudocode. Reads stdin when no
FILE is given.

Options:
  --lang LANG         Source language: java, typescript (default: from the
                      file extension, else java)
  --indent N          Spaces per indent level, 1-8 (default: 3)
  --no-comments       Omit explanatory comments from the output
  --strict            Treat unsupported constructs as errors
  --max-depth N       Maximum nesting depth (default: 50)
  -o, --output FILE   Write output to FILE instead of stdout
  -v, --verbose       Log pipeline phases to stderr
  --help              Show this help message
"""

EXTENSIONS: dict[str, str] = {
    ".java": "java",
    ".ts": "typescript",
    ".mts": "typescript",
}


def _int_arg(flag: str, value: str) -> int | None:
    try:
        return int(value)
    except ValueError:
        print("pseudoconv: " + flag + " expects an integer, got '" + value + "'", file=sys.stderr)
        return None


def _language_for(filepath: str) -> str:
    for ext, lang in EXTENSIONS.items():
        if filepath.endswith(ext):
            return lang
    return "java"


def read_source(filepath: str) -> tuple[str, int]:
    """Read source from a file or stdin. Returns (source, exit_code)."""
    if filepath != "":
        try:
            with open(filepath, "rb") as f:
                raw = f.read()
        except FileNotFoundError:
            print("pseudoconv: " + filepath + ": No such file or directory", file=sys.stderr)
            return ("", 1)
        except OSError as e:
            print("pseudoconv: " + filepath + ": " + str(e), file=sys.stderr)
            return ("", 1)
    else:
        raw = sys.stdin.buffer.read()
    try:
        return (raw.decode("utf-8"), 0)
    except ValueError:
        print("pseudoconv: invalid utf-8 in input", file=sys.stderr)
        return ("", 1)


def write_output(output: str, output_file: str) -> int:
    """Write output to a file or stdout. Returns 0 on success, 1 on error."""
    if output_file != "":
        try:
            with open(output_file, "w", encoding="utf-8") as f:
                f.write(output)
        except OSError as e:
            print("pseudoconv: cannot write '" + output_file + "': " + str(e), file=sys.stderr)
            return 1
        return 0
    sys.stdout.buffer.write(output.encode("utf-8"))
    sys.stdout.flush()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    filepath = ""
    output_file = ""
    language = ""
    indent = 3
    max_depth = 50
    include_comments = True
    strict = False
    verbose = False
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return 0
        elif arg in ("--lang", "--indent", "--max-depth", "-o", "--output"):
            if i + 1 >= len(args):
                print("pseudoconv: " + arg + " requires an argument", file=sys.stderr)
                return 2
            value = args[i + 1]
            if arg == "--lang":
                language = value
            elif arg == "-o" or arg == "--output":
                output_file = value
            else:
                number = _int_arg(arg, value)
                if number is None:
                    return 2
                if arg == "--indent":
                    indent = number
                else:
                    max_depth = number
            i += 2
        elif arg == "--no-comments":
            include_comments = False
            i += 1
        elif arg == "--strict":
            strict = True
            i += 1
        elif arg == "-v" or arg == "--verbose":
            verbose = True
            i += 1
        elif arg.startswith("-") and arg != "-":
            print("pseudoconv: unknown flag '" + arg + "'", file=sys.stderr)
            return 2
        elif filepath == "":
            filepath = "" if arg == "-" else arg
            i += 1
        else:
            print("pseudoconv: unexpected argument '" + arg + "'", file=sys.stderr)
            return 2

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        language = normalize_language(language or _language_for(filepath))
        options = ConversionOptions(
            indent_size=indent,
            include_comments=include_comments,
            strict_mode=strict,
            max_depth=max_depth,
        )
    except ValueError as e:
        print("pseudoconv: " + str(e), file=sys.stderr)
        return 2

    source, err = read_source(filepath)
    if err != 0:
        return err
    if source.strip() == "":
        print("pseudoconv: no input provided", file=sys.stderr)
        return 2

    result = convert(source, language, options)
    name = filepath or "<stdin>"
    for diag in result.warnings:
        sep = ":" if diag.line is not None else ": "
        print(name + sep + str(diag), file=sys.stderr)
        if diag.excerpt:
            print(diag.excerpt, file=sys.stderr)
    if not result.success:
        return 1

    return write_output(result.pseudocode, output_file)


if __name__ == "__main__":
    sys.exit(main())
