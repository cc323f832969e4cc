import pytest

from orchestrator.citation_formatter import PREVIEW_CHARS, format_citations, to_citation

from conftest import make_result

pytestmark = pytest.mark.unit


def test_short_content_is_kept_with_whitespace_collapsed():
    citation = to_citation(make_result("https://vinuni.edu.vn/a", content="  Tuition\n\n is   due  "))
    assert citation.content_preview == "Tuition is due"


def test_long_content_is_truncated_with_ellipsis():
    citation = to_citation(make_result("https://vinuni.edu.vn/a", content="x" * 500))
    assert len(citation.content_preview) == PREVIEW_CHARS
    assert citation.content_preview.endswith("...")


def test_score_is_rounded_and_shape_is_stable():
    citation = to_citation(make_result("https://vinuni.edu.vn/a", score=0.123456, title="Aid"))
    assert citation.to_dict() == {
        "title": "Aid",
        "url": "https://vinuni.edu.vn/a",
        "contentPreview": citation.content_preview,
        "score": 0.1235,
    }


def test_format_citations_preserves_order():
    results = [make_result("https://vinuni.edu.vn/b"), make_result("https://vinuni.edu.vn/a")]
    assert [c.url for c in format_citations(results)] == [r.url for r in results]
