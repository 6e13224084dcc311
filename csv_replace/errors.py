from __future__ import annotations
from typing import Optional


class CsvReplaceError(RuntimeError):
    """Base class for every failure that ends a run with a non-zero exit."""


class UsageError(CsvReplaceError):
    pass


class ConfigError(CsvReplaceError):
    pass


class MissingFileError(CsvReplaceError):
    def __init__(self, kind: str, path: str):
        self.kind = kind
        self.path = path
        super().__init__(f"{kind} '{path}' not found.")


class BackupError(CsvReplaceError):
    pass


class RulesError(CsvReplaceError):
    pass


class SubstitutionError(CsvReplaceError):
    backup_path: Optional[str] = None
