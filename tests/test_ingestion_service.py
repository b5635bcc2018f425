import json

import pytest

from sitescout.core.errors import IngestionError
from sitescout.services.ingestion_service import (
    ingest_analysis,
    sanitize,
    strip_citations,
    strip_code_fence,
)

from conftest import analysis_payload


def test_fenced_payload_parses_with_citation_removed():
    raw = (
        '```json\n{"url":"a.com","summary":"s","purpose":"p","howItWorks":"h",'
        '"requirements":{"functional":["f1 [1]"],"technical":[],"userExperience":[]},'
        '"structure":[]}\n```'
    )
    result = ingest_analysis(raw)
    assert result.url == "a.com"
    assert result.requirements.functional[0] == "f1 "
    assert result.requirements.technical == ()
    assert result.structure == ()


@pytest.mark.parametrize("fence", ["```json\n", "```\n", "```JSON\n", "```json"])
def test_fenced_and_unwrapped_payloads_are_equal(fence):
    body = json.dumps(analysis_payload())
    assert ingest_analysis(f"{fence}{body}\n```") == ingest_analysis(body)


def test_citation_markers_removed_everywhere_but_plain_numbers_kept():
    payload = analysis_payload(
        summary="Leading processor[1][23] for SaaS.",
        structure=[{"page": "/plans [4]", "description": "Plan 3 and [beta] tiers"}],
    )
    result = ingest_analysis(json.dumps(payload))
    assert result.summary == "Leading processor for SaaS."
    assert result.structure[0].page == "/plans "
    assert result.structure[0].description == "Plan 3 and [beta] tiers"
    assert "Plan 3 billing" in result.requirements.functional


def test_sanitize_is_idempotent_on_clean_input():
    body = json.dumps(analysis_payload())
    once = sanitize(body)
    assert sanitize(once) == once == body


def test_strip_code_fence_leaves_unfenced_text_alone():
    assert strip_code_fence('{"a": "```"}') == '{"a": "```"}'


def test_strip_citations_only_touches_bracketed_digits():
    assert strip_citations("see [12] and [x1] and [ 3 ]") == "see  and [x1] and [ 3 ]"


@pytest.mark.parametrize("raw", ["", None, "{}", "   ", "```json\n```", "not json", "[1]"])
def test_empty_or_malformed_payloads_fail(raw):
    with pytest.raises(IngestionError) as exc_info:
        ingest_analysis(raw)
    assert exc_info.value.user_message == (
        "Intelligence synthesis failed. The model output was non-compliant with the schema."
    )


def test_missing_required_field_fails():
    payload = analysis_payload()
    del payload["requirements"]["userExperience"]
    with pytest.raises(IngestionError):
        ingest_analysis(json.dumps(payload))


def test_wrong_type_fails():
    with pytest.raises(IngestionError):
        ingest_analysis(json.dumps(analysis_payload(structure="home page")))


def test_empty_strings_are_tolerated():
    result = ingest_analysis(json.dumps(analysis_payload(summary="", purpose="")))
    assert result.summary == ""
    assert result.purpose == ""


def test_parser_detail_not_exposed(caplog):
    with pytest.raises(IngestionError) as exc_info:
        ingest_analysis('{"url": ')
    assert "EOF" not in exc_info.value.user_message
    assert "Failed to parse AI intelligence payload" in caplog.text
