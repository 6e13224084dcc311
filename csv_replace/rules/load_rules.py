"""
Rules file parsing.

A rules file holds one "old,new" pair per line. The first comma is the
only separator, so `new` may contain commas but `old` cannot. One
trailing comma after `new` is dropped ("foo,bar," reads as "foo,bar").
There is no header, comment syntax or quoting. Bytes that do not decode
are carried through as surrogates so they still match the target.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Literal, Tuple, Union
import logging

from csv_replace.errors import RulesError

logger = logging.getLogger(__name__)

SkipReason = Literal["blank", "empty_pattern"]


@dataclass(frozen=True)
class ReplacementRule:
    search: str
    replace: str       # empty means delete every occurrence of `search`
    line_no: int = 0


@dataclass(frozen=True)
class Emit:
    rule: ReplacementRule


@dataclass(frozen=True)
class Skip:
    line_no: int
    reason: SkipReason


LineResult = Union[Emit, Skip]


def parse_rule_line(line: str, line_no: int = 0) -> LineResult:
    line = line.rstrip("\n")
    old, _, new = line.partition(",")
    # a single trailing comma after the second field is dropped, a doubled one is kept
    if new.endswith(",") and not new.endswith(",,"):
        new = new[:-1]

    if not old and not new:
        return Skip(line_no, "blank")

    old = old.strip()
    new = new.strip()
    if not old:
        return Skip(line_no, "empty_pattern")

    return Emit(ReplacementRule(search=old, replace=new, line_no=line_no))


def parse_rule_lines(lines: Iterable[str]) -> Tuple[List[ReplacementRule], List[Skip]]:
    rules: List[ReplacementRule] = []
    skipped: List[Skip] = []
    for line_no, line in enumerate(lines, start=1):
        result = parse_rule_line(line, line_no)
        if isinstance(result, Emit):
            rules.append(result.rule)
        else:
            logger.debug(f"Skipping rules line {line_no}: {result.reason}")
            skipped.append(result)
    return rules, skipped


def load_replacement_rules(path: str, encoding: str = "utf-8") -> Tuple[List[ReplacementRule], List[Skip]]:
    try:
        with open(path, "r", encoding=encoding, errors="surrogateescape") as f:
            rules, skipped = parse_rule_lines(f)
    except (OSError, UnicodeError) as e:
        raise RulesError(f"Cannot read rules file '{path}': {e}") from e

    logger.info(f"Loaded {len(rules)} rule(s) from {path} ({len(skipped)} line(s) skipped)")
    return rules, skipped
