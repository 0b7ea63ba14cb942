"""Newline-delimited JSON snapshot format (one issue per line)"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Union

from ..errors import ValidationFailure
from ..models import Issue, decode_issue

logger = logging.getLogger(__name__)

DEFAULT_JSONL_PATH = Path(".beads") / "issues.jsonl"


def parse_jsonl(content: str) -> List[Issue]:
    """Parse JSONL content; blank lines are skipped"""
    issues = []
    for line_number, line in enumerate(content.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            payload = json.loads(line)
        except json.JSONDecodeError as e:
            raise ValidationFailure(f"Invalid JSON on line {line_number}: {e}") from e
        try:
            issues.append(decode_issue(payload))
        except ValidationFailure as e:
            raise ValidationFailure(f"Line {line_number}: {e}") from e
    return issues


def load_issues(issues_path: Union[str, Path] = DEFAULT_JSONL_PATH) -> List[Issue]:
    """Load issues from a JSONL file; a missing file is an empty collection"""
    issues_file = Path(issues_path)

    if not issues_file.exists():
        logger.info("No issues file at %s", issues_file)
        return []

    try:
        with open(issues_file, "r", encoding="utf-8") as f:
            content = f.read()
    except UnicodeDecodeError as e:
        raise ValidationFailure(f"{issues_file} is not valid UTF-8: {e}") from e
    return parse_jsonl(content)


def dump_jsonl(issues: Iterable[Issue]) -> str:
    lines = [json.dumps(issue.to_dict(), ensure_ascii=False) for issue in issues]
    return "\n".join(lines) + "\n" if lines else ""


def save_issues(issues_path: Union[str, Path], issues: Iterable[Issue]):
    """Write issues atomically so readers never see a partial file"""
    issues_file = Path(issues_path)
    issues_file.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=issues_file.parent, prefix=".issues-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(dump_jsonl(issues))
        os.replace(tmp_name, issues_file)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
