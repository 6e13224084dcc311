from csv_replace.rules.load_rules import (
    ReplacementRule,
    Emit,
    Skip,
    parse_rule_line,
    parse_rule_lines,
    load_replacement_rules,
)

__all__ = [
    "ReplacementRule",
    "Emit",
    "Skip",
    "parse_rule_line",
    "parse_rule_lines",
    "load_replacement_rules",
]
