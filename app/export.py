import json
from typing import List, Optional

from .models import ProcessingResult


EXPORT_FORMATS = ("markdown", "json")


def to_markdown(result: ProcessingResult, *, filename: Optional[str] = None) -> str:
    lines: List[str] = [f"# {result.title or 'Untitled Arabic Work'}"]
    if result.author:
        lines.append(f"_by {result.author}_")
    source = f"{filename}, " if filename else ""
    lines.append(f"{source}pages 1-{result.current_page}")
    lines.append("")
    for pair in result.content:
        lines.append(f"> {pair.arabic}")
        lines.append("")
        lines.append(pair.english)
        if pair.number_pronunciation:
            lines.append("")
            lines.append(f"Numbers: {pair.number_pronunciation}")
        lines.append("")
        lines.append("---")
        lines.append("")
    return "\n".join(lines)


def to_json(result: ProcessingResult) -> str:
    return json.dumps(result.to_wire(), ensure_ascii=False, indent=2)
