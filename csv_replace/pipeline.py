from __future__ import annotations
from dataclasses import dataclass, field, asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
import logging

from csv_replace.apply import apply_to_file, count_matches, parse_script, read_target
from csv_replace.backup import create_backup
from csv_replace.config import Settings
from csv_replace.errors import MissingFileError, SubstitutionError
from csv_replace.escape import compile_rules, render_script
from csv_replace.rules.load_rules import ReplacementRule, load_replacement_rules

logger = logging.getLogger(__name__)


@dataclass
class RuleOutcome:
    line_no: int
    search: str
    replace: str
    command: str
    replacements: int = 0


@dataclass
class RunResult:
    rules_file: str
    target_file: str
    status: str                        # applied|no_rules|dry_run
    backup_path: Optional[str] = None
    skipped_lines: List[int] = field(default_factory=list)
    rules: List[RuleOutcome] = field(default_factory=list)

    @property
    def replacements_total(self) -> int:
        return sum(r.replacements for r in self.rules)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["replacements_total"] = self.replacements_total
        return d


def validate_inputs(rules_file: str, target_file: str) -> None:
    if not Path(rules_file).is_file():
        raise MissingFileError("CSV file", rules_file)
    if not Path(target_file).is_file():
        raise MissingFileError("target file", target_file)


def _outcomes(rules: List[ReplacementRule], commands: List[str]) -> List[RuleOutcome]:
    return [
        RuleOutcome(line_no=r.line_no, search=r.search, replace=r.replace, command=c)
        for r, c in zip(rules, commands)
    ]


def run_pipeline(
    *,
    rules_file: str,
    target_file: str,
    settings: Optional[Settings] = None,
    dry_run: bool = False,
    now: Optional[datetime] = None,
    report: Callable[[str], None] = print,
) -> RunResult:
    """
    Validate, back up, compile and apply the rules in `rules_file` to `target_file`.

    `report` receives the user-facing progress lines. Failures raise a
    CsvReplaceError subclass; a SubstitutionError raised after the backup
    carries the backup path in `backup_path`.
    """
    settings = settings or Settings()
    validate_inputs(rules_file, target_file)

    if dry_run:
        rules, skipped = load_replacement_rules(rules_file, settings.encoding)
        commands = compile_rules(rules, settings.delimiter)
        result = RunResult(rules_file, target_file, status="dry_run",
                           skipped_lines=[s.line_no for s in skipped],
                           rules=_outcomes(rules, commands))
        if commands:
            counts = count_matches(read_target(target_file, settings.encoding),
                                   parse_script(commands, settings.delimiter))
            for outcome, n in zip(result.rules, counts):
                outcome.replacements = n
        report(render_script(commands).rstrip("\n") or "(no rules)")
        return result

    backup = create_backup(target_file, now=now, suffix=settings.backup_suffix)
    report(f"Backup created: {backup}")

    rules, skipped = load_replacement_rules(rules_file, settings.encoding)
    result = RunResult(rules_file, target_file, status="no_rules", backup_path=str(backup),
                       skipped_lines=[s.line_no for s in skipped])
    if not rules:
        report(f"No replacement rules found in '{rules_file}'. Nothing to do.")
        return result

    commands = compile_rules(rules, settings.delimiter)
    result.rules = _outcomes(rules, commands)
    try:
        counts = apply_to_file(target_file, parse_script(commands, settings.delimiter), settings.encoding)
    except SubstitutionError as e:
        e.backup_path = str(backup)
        raise

    for outcome, n in zip(result.rules, counts):
        outcome.replacements = n
    result.status = "applied"
    logger.info(f"Applied {len(rules)} rule(s), {result.replacements_total} replacement(s)")
    report(f"Replacements applied to '{target_file}'.")
    report(f"Backup is at: {backup}")
    return result
