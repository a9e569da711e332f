from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class RuntimeSettings:
    """Settings loaded from the environment; CLI options override them."""

    tiki_path: str = ""
    fetch_workers: int = 4
    gh_binary: str = "gh"
    gh_timeout_s: int = 30
    keywords_file: str = ""

    @classmethod
    def from_env(cls) -> "RuntimeSettings":
        return cls(
            tiki_path=os.getenv("DEPGRAPH_TIKI_PATH", ""),
            fetch_workers=_get_env_int("DEPGRAPH_FETCH_WORKERS", default=4, minimum=1),
            gh_binary=os.getenv("DEPGRAPH_GH_BINARY", "gh"),
            gh_timeout_s=_get_env_int("DEPGRAPH_GH_TIMEOUT", default=30, minimum=1),
            keywords_file=os.getenv("DEPGRAPH_KEYWORDS_FILE", ""),
        ).normalized()

    @property
    def tiki_path_or_none(self) -> Optional[str]:
        return self.tiki_path or None

    def normalized(self) -> "RuntimeSettings":
        """Validate and normalize all fields. Raises ValueError on invalid configuration."""
        if self.fetch_workers < 1 or self.fetch_workers > 64:
            raise ValueError(f"DEPGRAPH_FETCH_WORKERS must be in 1..64, got: {self.fetch_workers}")
        if self.gh_timeout_s < 1:
            raise ValueError(f"DEPGRAPH_GH_TIMEOUT must be >= 1, got: {self.gh_timeout_s}")
        gh_binary = self.gh_binary.strip()
        if not gh_binary:
            raise ValueError("DEPGRAPH_GH_BINARY must be non-empty")
        return replace(
            self,
            tiki_path=self.tiki_path.strip(),
            gh_binary=gh_binary,
            keywords_file=self.keywords_file.strip(),
        )

    def with_overrides(self, **overrides: object) -> "RuntimeSettings":
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values).normalized()  # type: ignore[arg-type]


def _get_env_int(name: str, *, default: int, minimum: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got: {raw!r}") from e
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got: {value}")
    return value
