# sitescout/core/errors.py

class SiteScoutError(Exception):
    """Base error. ``user_message`` is the text safe to show to an end user."""
    status_code = 500
    default_message = "An unexpected error occurred."

    def __init__(self, user_message: str = ""):
        self.user_message = user_message or self.default_message
        super().__init__(self.user_message)


class ConfigurationError(SiteScoutError):
    status_code = 503
    default_message = (
        "API Key not found in GEMINI_API_KEY. Intelligence functions will be unavailable."
    )


class IngestionError(SiteScoutError):
    status_code = 502
    default_message = (
        "Intelligence synthesis failed. The model output was non-compliant with the schema."
    )


class TransportError(SiteScoutError):
    status_code = 502
    default_message = "An unexpected error occurred during crawling."


class ChatTurnError(SiteScoutError):
    # Never rendered over HTTP: the chat turn swallows it into a fallback reply.
    default_message = "Sorry, I encountered an error while deep-diving into the site."


class AnalysisInProgressError(SiteScoutError):
    status_code = 409
    default_message = "An analysis is already running. Wait for it to finish or reset."


class ChatInProgressError(SiteScoutError):
    status_code = 409
    default_message = "A follow-up question is still being answered."


class StaleRunError(SiteScoutError):
    status_code = 409
    default_message = "This analysis was abandoned before it finished; its result was discarded."
