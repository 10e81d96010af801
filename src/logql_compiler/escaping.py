"""Escaping of raw values for LogQL double-quoted string literals."""

import re

# Placeholder value for "work in progress" filters; rendered without quotes
EMPTY_VARIABLE_VALUE = '""'

# RE2 metacharacters
RE2_METACHARACTERS = re.compile(r"[*+?()|\\.\[\]{}^$]")


def escape_exact_selector(value: str) -> str:
    """Escape a value for an exact-match double-quoted literal.

    Backslashes, newlines and double quotes are escaped. Backticks and
    regex syntax pass through unchanged.
    """
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def escape_loki_regexp(value: str) -> str:
    """Backslash-escape RE2 metacharacters so the value matches literally."""
    return RE2_METACHARACTERS.sub(lambda m: "\\" + m.group(0), value)


def escape_regex_selector(value: str) -> str:
    """Escape literal text for a regex matcher inside a double-quoted literal."""
    return escape_exact_selector(escape_loki_regexp(value))
