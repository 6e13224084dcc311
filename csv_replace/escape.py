"""
Compile replacement rules into substitution commands.

Each rule becomes one `s|pattern|replacement|g` line. Both sides are
escaped so the engine treats them as literal text: the pattern against
the regex dialect of Python's `re`, the replacement against the `&`
whole-match marker and backslash escapes. The delimiter is escaped on
both sides.
"""
from __future__ import annotations
from typing import Iterable, List
import re

from csv_replace.rules.load_rules import ReplacementRule

DEFAULT_DELIMITER = "|"

# Closing bracket is listed first so it cannot end the class early.
PATTERN_SPECIALS = "]\\.^$*+?{}()|["
_PATTERN_CLASS = re.compile(r"[]\\.^$*+?{}()|[]")

REPLACEMENT_SPECIALS = "&\\"
_REPLACEMENT_CLASS = re.compile(r"[&\\]")


def escape_pattern(text: str, delimiter: str = DEFAULT_DELIMITER) -> str:
    escaped = _PATTERN_CLASS.sub(r"\\\g<0>", text)
    if delimiter not in PATTERN_SPECIALS:
        escaped = escaped.replace(delimiter, "\\" + delimiter)
    return escaped


def escape_replacement(text: str, delimiter: str = DEFAULT_DELIMITER) -> str:
    escaped = _REPLACEMENT_CLASS.sub(r"\\\g<0>", text)
    if delimiter not in REPLACEMENT_SPECIALS:
        escaped = escaped.replace(delimiter, "\\" + delimiter)
    return escaped


def compile_rule(rule: ReplacementRule, delimiter: str = DEFAULT_DELIMITER) -> str:
    d = delimiter
    return f"s{d}{escape_pattern(rule.search, d)}{d}{escape_replacement(rule.replace, d)}{d}g"


def compile_rules(rules: Iterable[ReplacementRule], delimiter: str = DEFAULT_DELIMITER) -> List[str]:
    return [compile_rule(r, delimiter) for r in rules]


def render_script(commands: Iterable[str]) -> str:
    return "".join(f"{c}\n" for c in commands)
