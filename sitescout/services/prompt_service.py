# sitescout/services/prompt_service.py
from typing import Iterable

from google.genai import types
from langchain_core.prompts import PromptTemplate

from sitescout.models import ChatMessage, SiteAnalysis

ANALYSIS_PROMPT_TEMPLATE = """
Perform a deep, exhaustive analysis of the website: {url}.
First, use Google Search to find all main pages and subdirectories.
Then, synthesize a comprehensive report covering:
1. A high-level executive summary.
2. What the website does (Business Goals).
3. How it works (Technical architecture, user flows, and integrations).
4. Full requirements list (Functional, Technical, UX).
5. A mapping of the site structure (Main pages and their roles).

Ensure you find real page URLs from the domain.
IMPORTANT: Return ONLY the JSON object. Do not include markdown formatting or citations in the JSON string itself.
"""

FOLLOW_UP_PROMPT_TEMPLATE = """
Context: You have already performed an initial scan of the website {url}.
Initial Analysis: {analysis}
{transcript}
The user is now asking a follow-up question: "{question}"

Instructions:
1. If the question asks for details not present in the initial analysis, use Google Search to deep-dive.
2. Provide a detailed, professional answer.
"""

analysis_prompt = PromptTemplate.from_template(ANALYSIS_PROMPT_TEMPLATE)
follow_up_prompt = PromptTemplate.from_template(FOLLOW_UP_PROMPT_TEMPLATE)


def normalize_url(raw: str) -> str:
    """Scheme-qualifies a user-entered domain, e.g. ``stripe.com`` -> ``https://stripe.com``."""
    url = raw.strip()
    if url and not url.startswith("http"):
        url = f"https://{url}"
    return url

def build_analysis_prompt(url: str) -> str:
    return analysis_prompt.format(url=url).strip()

def _string_array() -> types.Schema:
    return types.Schema(type=types.Type.ARRAY, items=types.Schema(type=types.Type.STRING))

def analysis_response_schema() -> types.Schema:
    """
    Output schema for the analysis call. Mirrors the wire shape of AnalysisPayload;
    the model is asked to honour it but the ingestion pipeline still validates.
    """
    string = types.Schema(type=types.Type.STRING)
    return types.Schema(
        type=types.Type.OBJECT,
        properties={
            "url": string,
            "summary": string,
            "purpose": string,
            "howItWorks": string,
            "requirements": types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "functional": _string_array(),
                    "technical": _string_array(),
                    "userExperience": _string_array(),
                },
                required=["functional", "technical", "userExperience"],
            ),
            "structure": types.Schema(
                type=types.Type.ARRAY,
                items=types.Schema(
                    type=types.Type.OBJECT,
                    properties={"page": string, "description": string},
                    required=["page", "description"],
                ),
            ),
        },
        required=["url", "summary", "purpose", "howItWorks", "requirements", "structure"],
    )

def format_transcript(history: Iterable[ChatMessage]) -> str:
    lines = []
    for msg in history:
        speaker = "User" if msg.role == "user" else "Assistant"
        lines.append(f"{speaker}: {msg.content}")
    if not lines:
        return ""
    return "\nConversation so far:\n" + "\n".join(lines) + "\n"

def build_follow_up_prompt(
    url: str,
    analysis: SiteAnalysis,
    question: str,
    history: Iterable[ChatMessage] = (),
) -> str:
    """
    Builds the free-form follow-up instruction. The prior report is embedded as JSON
    context so the model only searches when the answer is not already there.
    """
    return follow_up_prompt.format(
        url=url,
        analysis=analysis.model_dump_json(by_alias=True),
        transcript=format_transcript(history),
        question=question.strip(),
    ).strip()
