from sitescout.models import Source
from sitescout.services.grounding_service import extract_sources, is_deep_dive

from conftest import web_chunk


def test_empty_uri_chunks_are_dropped():
    chunks = [
        {"web": {"title": "Pricing", "uri": "https://a.com/pricing"}},
        {"web": {"uri": ""}},
    ]
    assert extract_sources(chunks) == (Source(title="Pricing", uri="https://a.com/pricing"),)


def test_order_kept_and_missing_title_defaults():
    chunks = [
        web_chunk("https://a.com/b", "B"),
        web_chunk(None, "No uri"),
        SimpleChunkWithoutWeb(),
        web_chunk("https://a.com/a"),
    ]
    assert extract_sources(chunks) == (
        Source(title="B", uri="https://a.com/b"),
        Source(title="Source", uri="https://a.com/a"),
    )


def test_duplicate_uris_keep_first_but_titles_may_repeat():
    chunks = [
        web_chunk("https://a.com/1", "Docs"),
        web_chunk("https://a.com/2", "Docs"),
        web_chunk("https://a.com/1", "Docs again"),
    ]
    assert [s.uri for s in extract_sources(chunks)] == ["https://a.com/1", "https://a.com/2"]
    assert [s.title for s in extract_sources(chunks)] == ["Docs", "Docs"]


def test_no_chunks():
    assert extract_sources(None) == ()
    assert extract_sources([]) == ()


def test_is_deep_dive():
    source = (Source(title="x", uri="https://x"),)
    assert is_deep_dive(True, ()) is True
    assert is_deep_dive(False, source) is True
    assert is_deep_dive(False, ()) is False


class SimpleChunkWithoutWeb:
    web = None
