"""exceptions raised inside the interpretation pipeline."""

from __future__ import annotations


class InterpreterError(Exception):
    """base class for pipeline errors."""
    pass


class ProviderError(InterpreterError):
    """generative backend could not produce a usable reply.

    reason is a short operator-facing hint ("rate limited", "malformed reply").
    """

    def __init__(self, reason: str, detail: str = ""):
        self.reason = reason
        self.detail = detail
        super().__init__(f"{reason}: {detail}" if detail else reason)


class ReplyValidationError(ProviderError):
    """reply parsed but is missing envelope fields or names unknown tools."""

    def __init__(self, detail: str = ""):
        super().__init__("malformed reply", detail)


class ToolError(InterpreterError):
    """tool call cannot be applied (unknown tool, missing args, unknown id).

    applied holds the calls of the same batch that ran before this one.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.applied: list = []


def classify_provider_error(exc: BaseException) -> str:
    """map a transport/provider exception to a short reason."""
    if isinstance(exc, ProviderError):
        return exc.reason
    text = str(exc).lower()
    if "quota" in text or "insufficient_quota" in text or "billing" in text:
        return "quota exceeded"
    if "429" in text or "rate limit" in text or "rate_limit" in text:
        return "rate limited"
    if "api key" in text or "api_key" in text or "401" in text or "unauthorized" in text:
        return "api key issue"
    if "json" in text:
        return "malformed reply"
    return "unavailable"
