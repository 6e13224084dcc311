from __future__ import annotations
from datetime import datetime
from pathlib import Path
from shutil import copyfileobj, copystat
from typing import Optional
import logging

from csv_replace.errors import BackupError

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


def backup_path_for(target: str, now: Optional[datetime] = None, suffix: str = "bak") -> Path:
    """<target>.<suffix>.YYYYMMDDHHMMSS, with .1, .2, ... added if that name is taken."""
    ts = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
    base = Path(f"{target}.{suffix}.{ts}")
    candidate = base
    n = 0
    while candidate.exists():
        n += 1
        candidate = Path(f"{base}.{n}")
    return candidate


def create_backup(target: str, now: Optional[datetime] = None, suffix: str = "bak") -> Path:
    """Copy `target` to a fresh backup path. An existing file is never overwritten."""
    base = backup_path_for(target, now=now, suffix=suffix)
    dest = base
    n = 0
    while True:
        try:
            with open(target, "rb") as src, open(dest, "xb") as out:
                copyfileobj(src, out)
            break
        except FileExistsError:
            # taken between the name check and the create
            n += 1
            dest = Path(f"{base}.{n}")
        except OSError as e:
            raise BackupError(f"Cannot create backup '{dest}': {e.strerror or e}") from e

    try:
        copystat(target, dest)
    except OSError as e:
        raise BackupError(f"Cannot copy metadata to backup '{dest}': {e.strerror or e}") from e
    logger.info(f"Copied {target} to {dest}")
    return dest
