"""
Substitution engine.

Runs a compiled script of `s|pattern|replacement|g` commands over a
text, one command after another, each on the output of the previous
one. Files are read and written with `surrogateescape`, so bytes that
do not decode pass through unchanged. `apply_to_file` writes the result
to a staging file next to the target and renames it over the target
only after every command has run.
"""
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Tuple
import logging
import os
import re
import shutil
import tempfile

from csv_replace.errors import SubstitutionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubstitutionCommand:
    source: str            # the command as written in the script
    pattern: "re.Pattern[str]"
    template: str          # replacement in re.sub template syntax


def _split_command(line: str, delimiter: str) -> List[str]:
    if len(line) < 2 or line[0] != "s" or line[1] != delimiter:
        raise SubstitutionError(f"Not a substitution command: {line!r}")

    parts: List[str] = []
    current: List[str] = []
    i = 2
    while i < len(line):
        ch = line[i]
        if ch == "\\":
            if i + 1 >= len(line):
                raise SubstitutionError(f"Trailing backslash in command: {line!r}")
            current.append(line[i:i + 2])
            i += 2
            continue
        if ch == delimiter and len(parts) < 2:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    parts.append("".join(current))

    if len(parts) != 3:
        raise SubstitutionError(f"Unterminated substitution command: {line!r}")
    return parts


def _translate_replacement(text: str) -> str:
    """`&` is the whole match, `\\X` is a literal X; everything else is literal."""
    out: List[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            literal = text[i + 1]
            out.append("\\\\" if literal == "\\" else literal)
            i += 2
            continue
        out.append(r"\g<0>" if ch == "&" else ch)
        i += 1
    return "".join(out)


def parse_command(line: str, delimiter: str = "|") -> SubstitutionCommand:
    pattern_src, replacement_src, flags = _split_command(line, delimiter)
    if flags != "g":
        raise SubstitutionError(f"Unsupported flags {flags!r} in command: {line!r}")
    if not pattern_src:
        raise SubstitutionError(f"Empty pattern in command: {line!r}")

    # `\<delimiter>` is a literal in re syntax
    try:
        pattern = re.compile(pattern_src)
    except re.error as e:
        raise SubstitutionError(f"Invalid pattern in command {line!r}: {e}") from e
    return SubstitutionCommand(source=line, pattern=pattern, template=_translate_replacement(replacement_src))


def parse_script(lines: Iterable[str], delimiter: str = "|") -> List[SubstitutionCommand]:
    return [parse_command(line.rstrip("\n"), delimiter) for line in lines if line.strip()]


def apply_script(text: str, commands: Iterable[SubstitutionCommand]) -> Tuple[str, List[int]]:
    counts: List[int] = []
    for cmd in commands:
        try:
            text, n = cmd.pattern.subn(cmd.template, text)
        except re.error as e:
            raise SubstitutionError(f"Command {cmd.source!r} failed: {e}") from e
        logger.info(f"{cmd.source}: {n} replacement(s)")
        counts.append(n)
    return text, counts


def count_matches(text: str, commands: Iterable[SubstitutionCommand]) -> List[int]:
    """Replacement counts a run would produce, without touching any file."""
    _, counts = apply_script(text, commands)
    return counts


def read_target(path: str, encoding: str = "utf-8") -> str:
    try:
        with open(path, "r", encoding=encoding, errors="surrogateescape", newline="") as f:
            return f.read()
    except (OSError, UnicodeError) as e:
        raise SubstitutionError(f"cannot read '{path}': {e}") from e


def apply_to_file(path: str, commands: List[SubstitutionCommand], encoding: str = "utf-8") -> List[int]:
    target = Path(path)
    text = read_target(path, encoding)
    result, counts = apply_script(text, commands)

    staging = None
    try:
        fd, staging = tempfile.mkstemp(dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp")
        try:
            f = os.fdopen(fd, "w", encoding=encoding, errors="surrogateescape", newline="")
        except BaseException:
            os.close(fd)
            raise
        with f:
            f.write(result)
        shutil.copymode(str(target), staging)
        os.replace(staging, str(target))
        staging = None
    except (OSError, UnicodeError) as e:
        raise SubstitutionError(f"cannot write '{path}': {e}") from e
    finally:
        if staging is not None and os.path.exists(staging):
            os.unlink(staging)

    logger.info(f"Wrote {sum(counts)} replacement(s) to {path}")
    return counts
