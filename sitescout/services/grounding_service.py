# sitescout/services/grounding_service.py
from typing import Any, Iterable, List, Optional, Tuple

from sitescout.models import Source

DEFAULT_SOURCE_TITLE = "Source"


def _get(obj: Any, name: str) -> Any:
    # Chunks arrive as google-genai objects from the API and as plain dicts from tests/fixtures.
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)

def extract_sources(chunks: Optional[Iterable[Any]]) -> Tuple[Source, ...]:
    """
    Converts grounding chunks into citations.

    Args:
        chunks: The grounding chunks of the first response candidate, in citation order.

    Returns:
        Sources in first-seen order. Chunks without a web URI are dropped and a URI
        cited more than once is only kept the first time. Titles may repeat.
    """
    sources: List[Source] = []
    seen = set()
    for chunk in chunks or ():
        web = _get(chunk, "web")
        uri = _get(web, "uri") or ""
        if not uri or uri in seen:
            continue
        seen.add(uri)
        sources.append(Source(title=_get(web, "title") or DEFAULT_SOURCE_TITLE, uri=uri))
    return tuple(sources)

def is_deep_dive(search_entry_point: bool, sources: Tuple[Source, ...]) -> bool:
    """Best guess at whether the model actually searched while answering."""
    return bool(search_entry_point or sources)
