from pathlib import Path

from release_depgraph.core.extract.keyword_config import (
    DEFAULT_KEYWORDS,
    KeywordConfigError,
    load_and_merge,
    load_keyword_file,
    merged_keywords,
)

DEMO = Path(__file__).resolve().parent.parent / "examples" / "demo"


def test_defaults_without_file():
    assert load_and_merge(None) == DEFAULT_KEYWORDS


def test_load_keyword_file_mapping():
    assert load_keyword_file(DEMO / "keywords.yaml") == ["waits for", "needs"]


def test_load_keyword_file_bare_list_normalizes_whitespace(tmp_path: Path):
    p = tmp_path / "kw.yaml"
    p.write_text("- '  waits   for '\n", encoding="utf-8")
    assert load_keyword_file(p) == ["waits for"]


def test_merged_keywords_skips_case_duplicates():
    merged = merged_keywords(["Depends On", "needs"])
    assert merged == DEFAULT_KEYWORDS + ["needs"]


def test_load_keyword_file_rejects_bad_items(tmp_path: Path):
    p = tmp_path / "kw.yaml"
    p.write_text("phrases: [1, '']\n", encoding="utf-8")
    try:
        load_keyword_file(p)
        assert False, "expected KeywordConfigError"
    except KeywordConfigError as e:
        assert "non-empty strings" in str(e)


def test_load_keyword_file_rejects_scalar(tmp_path: Path):
    p = tmp_path / "kw.yaml"
    p.write_text("just a string\n", encoding="utf-8")
    try:
        load_keyword_file(p)
        assert False, "expected KeywordConfigError"
    except KeywordConfigError:
        pass


def test_empty_keyword_file_adds_nothing(tmp_path: Path):
    p = tmp_path / "kw.yaml"
    p.write_text("", encoding="utf-8")
    assert load_and_merge(str(p)) == DEFAULT_KEYWORDS


def test_load_keyword_file_rejects_invalid_yaml(tmp_path: Path):
    p = tmp_path / "kw.yaml"
    p.write_text("phrases: [unclosed\n", encoding="utf-8")
    try:
        load_keyword_file(p)
        assert False, "expected KeywordConfigError"
    except KeywordConfigError as e:
        assert "invalid YAML" in str(e)
