from __future__ import annotations

from pathlib import Path

import yaml


# Phrases that introduce a dependency reference ("depends on #42").
DEFAULT_KEYWORDS: list[str] = ["depends on", "blocked by", "requires", "after"]


class KeywordConfigError(ValueError):
    pass


def load_keyword_file(path: str | Path) -> list[str]:
    """Load extra dependency phrases from a YAML file.

    Format, either:
      phrases: ["waits for", "needs"]
    or a bare list:
      - waits for
      - needs
    """
    p = Path(path)
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise KeywordConfigError(f"invalid YAML: {e}") from e
    if raw is None:
        return []
    if isinstance(raw, dict):
        raw = raw.get("phrases")
    if not isinstance(raw, list):
        raise KeywordConfigError("keyword file must be a list of phrases or a mapping with 'phrases'")

    out: list[str] = []
    for item in raw:
        if not isinstance(item, str) or not item.strip():
            raise KeywordConfigError("keyword phrases must be non-empty strings")
        out.append(" ".join(item.split()))
    return out


def merged_keywords(extra: list[str] | None = None) -> list[str]:
    """Return DEFAULT_KEYWORDS followed by any new phrases from `extra`.

    Matching is case-insensitive, so phrases differing only by case are dropped.
    """
    merged = list(DEFAULT_KEYWORDS)
    seen = {k.lower() for k in merged}
    for phrase in extra or []:
        if phrase.lower() in seen:
            continue
        seen.add(phrase.lower())
        merged.append(phrase)
    return merged


def load_and_merge(keywords_file: str | None) -> list[str]:
    if not keywords_file:
        return merged_keywords()
    return merged_keywords(load_keyword_file(keywords_file))
