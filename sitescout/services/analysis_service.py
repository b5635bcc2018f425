# sitescout/services/analysis_service.py
import logging
from typing import Iterable

from sitescout.core.errors import ChatTurnError, SiteScoutError
from sitescout.models import ChatMessage, FollowUpAnswer, SiteAnalysis
from sitescout.services.grounding_service import extract_sources, is_deep_dive
from sitescout.services.ingestion_service import ingest_analysis
from sitescout.services.llm_service import GeminiClient, ModelReply
from sitescout.services.prompt_service import (
    analysis_response_schema,
    build_analysis_prompt,
    build_follow_up_prompt,
)

logger = logging.getLogger(__name__)

NO_ANSWER = "I couldn't find more information on that."


async def request_analysis(client: GeminiClient, url: str) -> ModelReply:
    """Sends the search-grounded, schema-constrained analysis request for ``url``."""
    logger.info("Requesting analysis for %s", url)
    return await client.generate_analysis(build_analysis_prompt(url), analysis_response_schema())

def build_site_analysis(reply: ModelReply, url: str) -> SiteAnalysis:
    """
    Runs the ingestion pipeline and attaches the grounding sources.
    Either the whole report is returned or IngestionError is raised.

    The report is keyed by the normalized ``url`` that was requested, whatever
    the model echoed back in its own ``url`` field.
    """
    payload = ingest_analysis(reply.text).model_copy(update={"url": url})
    return payload.with_sources(extract_sources(reply.grounding_chunks))

async def ask_follow_up(
    client: GeminiClient,
    analysis: SiteAnalysis,
    question: str,
    history: Iterable[ChatMessage] = (),
) -> FollowUpAnswer:
    """
    Answers a question about an existing report, searching again only if needed.

    Raises:
        ChatTurnError: If the remote call fails for any reason.
    """
    prompt = build_follow_up_prompt(analysis.url, analysis, question, history)
    try:
        reply = await client.generate_answer(prompt)
    except SiteScoutError as e:
        raise ChatTurnError() from e
    except Exception as e:
        logger.exception("Unexpected failure while answering a follow-up about %s", analysis.url)
        raise ChatTurnError() from e

    sources = extract_sources(reply.grounding_chunks)
    return FollowUpAnswer(
        answer=reply.text or NO_ANSWER,
        is_deep_dive=is_deep_dive(reply.search_entry_point, sources),
        sources=sources,
    )
