from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Any, Optional, Protocol

import yaml

from release_depgraph.core.errors import IssueFetchError
from release_depgraph.core.io.load_state import is_int
from release_depgraph.core.model import IssueRecord


class IssueSource(Protocol):
    def fetch(self, number: int, workspace: Optional[str] = None) -> IssueRecord: ...


def issue_from_obj(obj: Any, *, where: str) -> IssueRecord:
    if not isinstance(obj, dict) or not is_int(obj.get("number")):
        raise IssueFetchError(
            code="E_ISSUE_PARSE",
            message="issue must be an object with an integer number",
            path=where,
        )
    body = obj.get("body")
    return IssueRecord(
        number=int(obj["number"]),
        title=str(obj.get("title") or ""),
        body=body if isinstance(body, str) else None,
        state=str(obj.get("state") or "OPEN"),
    )


class GhIssueSource:
    """Fetch issues through the GitHub CLI (`gh issue view`)."""

    FIELDS = "number,title,body,state"

    def __init__(self, binary: str = "gh", timeout_s: int = 30) -> None:
        self.binary = binary
        self.timeout_s = timeout_s

    def fetch(self, number: int, workspace: Optional[str] = None) -> IssueRecord:
        args = [self.binary, "issue", "view", str(number), "--json", self.FIELDS]
        try:
            proc = subprocess.run(
                args,
                cwd=workspace,
                capture_output=True,
                text=True,
                timeout=self.timeout_s,
            )
        except FileNotFoundError as e:
            raise IssueFetchError(
                code="E_GH_NOT_FOUND",
                message=f"GitHub CLI ({self.binary}) is not installed",
                path=f"#{number}",
            ) from e
        except subprocess.TimeoutExpired as e:
            raise IssueFetchError(
                code="E_GH_FAILED",
                message=f"timed out after {self.timeout_s}s",
                path=f"#{number}",
            ) from e

        if proc.returncode != 0:
            raise IssueFetchError(
                code="E_GH_FAILED",
                message=(proc.stderr or "").strip() or f"exit code {proc.returncode}",
                path=f"#{number}",
            )

        try:
            data = json.loads(proc.stdout)
        except json.JSONDecodeError as e:
            raise IssueFetchError(code="E_GH_PARSE", message=str(e), path=f"#{number}") from e
        return issue_from_obj(data, where=f"#{number}")


class FileIssueSource:
    """Serve issues from a cached YAML/JSON export.

    Accepted shapes: a list of issues, or a mapping with an `issues` list.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._issues = _load_issue_file(path)

    def fetch(self, number: int, workspace: Optional[str] = None) -> IssueRecord:
        issue = self._issues.get(number)
        if issue is None:
            raise IssueFetchError(
                code="E_ISSUE_UNKNOWN",
                message=f"issue #{number} is not in the issue file",
                file=self.path,
            )
        return issue


def _load_issue_file(path: str) -> dict[int, IssueRecord]:
    p = Path(path)
    if not p.exists():
        raise IssueFetchError(code="E_FILE_NOT_FOUND", message="file does not exist", file=str(p))

    suffix = p.suffix.lower()
    raw_text = p.read_text(encoding="utf-8")
    try:
        if suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(raw_text)
        elif suffix == ".json":
            data = json.loads(raw_text)
        else:
            raise IssueFetchError(
                code="E_UNSUPPORTED_FORMAT",
                message="supported formats are .yaml/.yml and .json",
                file=str(p),
            )
    except IssueFetchError:
        raise
    except Exception as e:
        code = "E_YAML_PARSE" if suffix in {".yaml", ".yml"} else "E_JSON_PARSE"
        raise IssueFetchError(code=code, message=str(e), file=str(p)) from e

    if isinstance(data, dict):
        data = data.get("issues")
    if not isinstance(data, list):
        raise IssueFetchError(
            code="E_INVALID_TOP_LEVEL",
            message="issue file must be a list of issues or a mapping with 'issues'",
            file=str(p),
        )

    out: dict[int, IssueRecord] = {}
    for i, raw in enumerate(data):
        issue = issue_from_obj(raw, where=f"issues[{i}]")
        out[issue.number] = issue
    return out
