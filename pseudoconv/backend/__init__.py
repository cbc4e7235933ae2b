"""Output formatting."""

from .format import FormatIssue, check_structure, format_lines

__all__ = ["FormatIssue", "check_structure", "format_lines"]
