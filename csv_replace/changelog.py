from __future__ import annotations
from typing import Any, Dict, List
import json


def write_json(path: str, payload: Dict[str, Any]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)


def render_txt(payload: Dict[str, Any]) -> str:
    lines: List[str] = []
    lines.append(f"Run summary: {payload.get('status')}")
    lines.append(f"- Rules file: {payload.get('rules_file')}")
    lines.append(f"- Target:     {payload.get('target_file')}")
    lines.append(f"- Backup:     {payload.get('backup_path') or '[not created]'}")
    skipped = payload.get("skipped_lines") or []
    if skipped:
        lines.append(f"- Skipped lines: {', '.join(str(n) for n in skipped)}")
    rules = payload.get("rules") or []
    if rules:
        lines.append("")
        lines.append("Rules")
        for r in rules:
            lines.append(f"- line {r['line_no']}: {r['command']} ({r['replacements']} replacement(s))")
    lines.append("")
    lines.append(f"Total replacements: {payload.get('replacements_total', 0)}")
    return "\n".join(lines)


def write_report(path: str, payload: Dict[str, Any]) -> None:
    """JSON unless the path ends in .txt."""
    if path.lower().endswith(".txt"):
        with open(path, "w", encoding="utf-8") as f:
            f.write(render_txt(payload) + "\n")
    else:
        write_json(path, payload)
