"""
CSV-driven literal find-and-replace.

Rules come from a file of "old,new" lines and are applied in order to a
target file, after a timestamped backup of that file has been made.
"""
from csv_replace.rules.load_rules import ReplacementRule, load_replacement_rules
from csv_replace.escape import compile_rules, escape_pattern, escape_replacement
from csv_replace.apply import apply_script, apply_to_file, parse_script
from csv_replace.backup import create_backup
from csv_replace.config import Settings, load_settings
from csv_replace.pipeline import RunResult, run_pipeline

__all__ = [
    "ReplacementRule",
    "load_replacement_rules",
    "compile_rules",
    "escape_pattern",
    "escape_replacement",
    "apply_script",
    "apply_to_file",
    "parse_script",
    "create_backup",
    "Settings",
    "load_settings",
    "RunResult",
    "run_pipeline",
]
