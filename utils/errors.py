"""Structured error types for the UX audit system."""

class AuditError(Exception):
    """Base exception for audit errors."""
    pass

class AgentError(AuditError):
    """Error raised by an agent during analysis."""
    def __init__(self, agent_name: str, message: str):
        self.agent_name = agent_name
        super().__init__(f"Agent '{agent_name}': {message}")

class LLMError(AuditError):
    """Error related to LLM API calls."""
    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"LLM ({provider}): {message}")


class RateLimitError(LLMError):
    """The model gateway refused the request because of rate limits (HTTP 429)."""
    def __init__(self, provider: str = "unknown", message: str = "Rate limits exceeded, please try again later."):
        self.user_message = message
        super().__init__(provider, message)


class PaymentRequiredError(LLMError):
    """The model gateway account is out of credits (HTTP 402)."""
    def __init__(self, provider: str = "unknown", message: str = "Payment required, please add funds."):
        self.user_message = message
        super().__init__(provider, message)


class LLMResponseValidationError(LLMError):
    """LLM response missing expected fields."""
    def __init__(self, missing_fields, raw_response="", message=""):
        self.missing_fields = missing_fields
        self.raw_response = raw_response
        super().__init__(
            provider="unknown",
            message=message or f"LLM response missing fields: {', '.join(missing_fields)}"
        )

class ScrapingError(AuditError):
    """Error during single-page fetching."""
    def __init__(self, url: str, message: str):
        self.url = url
        super().__init__(f"Scraping '{url}': {message}")

class ValidationError(AuditError):
    """Error for invalid input (URLs, forms, crawl modes)."""
    def __init__(self, message: str, errors=None):
        self.errors = list(errors or [message])
        super().__init__(message)


class CrawlError(AuditError):
    """Error reported by the crawl service."""
    error_code = "CRAWL_FAILED"

    def __init__(self, message: str, status_code: int = 0, details: str = ""):
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class InsufficientCreditsError(CrawlError):
    error_code = "INSUFFICIENT_CREDITS"


class CrawlRateLimitError(CrawlError):
    error_code = "RATE_LIMIT"


class WebsiteNotSupportedError(CrawlError):
    error_code = "WEBSITE_NOT_SUPPORTED"


class CrawlJobNotFoundError(CrawlError):
    """The remote crawl job no longer exists (expired or purged)."""
    error_code = "JOB_EXPIRED"


class FigmaExportError(AuditError):
    """Error while exporting research artifacts to Figma."""
    pass


class UnknownHeuristicSetError(AuditError):
    """A heuristic selection named a set id that is not in the catalog."""
    def __init__(self, set_id: str):
        self.set_id = set_id
        super().__init__(f"Unknown heuristic set: {set_id!r}")


class UnknownHeuristicError(AuditError):
    """A custom selection named heuristic ids that are not in the catalog."""
    def __init__(self, heuristic_ids):
        self.heuristic_ids = list(heuristic_ids)
        super().__init__(f"Unknown heuristic id(s): {', '.join(self.heuristic_ids)}")
