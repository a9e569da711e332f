from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import AbstractSet, Iterator, Optional, Sequence

from release_depgraph.core.extract.keyword_config import DEFAULT_KEYWORDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reference:
    number: int
    keyword: str
    offset: int


@lru_cache(maxsize=32)
def _compile(keywords: tuple[str, ...]) -> re.Pattern[str]:
    # Longest phrase first so "blocked by" wins over a user phrase like "blocked".
    ordered = sorted(keywords, key=len, reverse=True)
    alternation = "|".join(re.escape(k) for k in ordered)
    return re.compile(rf"({alternation})\s+#([0-9]+)", re.IGNORECASE)


def compile_pattern(keywords: Optional[Sequence[str]] = None) -> re.Pattern[str]:
    return _compile(tuple(keywords or DEFAULT_KEYWORDS))


def scan_references(
    text: Optional[str], keywords: Optional[Sequence[str]] = None
) -> Iterator[Reference]:
    """Yield every keyword-introduced `#N` mention, left to right, unfiltered."""
    if not text:
        return
    for m in compile_pattern(keywords).finditer(text):
        yield Reference(number=int(m.group(2)), keyword=m.group(1).lower(), offset=m.start())


def extract_dependencies(
    text: Optional[str],
    scope_ids: AbstractSet[int],
    keywords: Optional[Sequence[str]] = None,
) -> list[int]:
    """Return the issue numbers `text` depends on.

    Only numbers in `scope_ids` are kept; order is first mention, no duplicates.
    """
    deps: list[int] = []
    for ref in scan_references(text, keywords):
        if ref.number not in scope_ids:
            logger.debug("dropping out-of-scope reference #%d (%s)", ref.number, ref.keyword)
            continue
        if ref.number not in deps:
            deps.append(ref.number)
    return deps
