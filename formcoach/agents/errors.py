"""
Failure taxonomy for the reasoning service.

Every failure carries a human-readable ``category`` that ends up in the
``issues`` list of the neutral result the orchestrator substitutes.
"""


class AnalysisError(RuntimeError):
    """Base class for reasoning-service failures."""
    category = "Analysis Error"
    user_message = "Analysis unavailable."


class MissingCredentialsError(AnalysisError):
    """The service cannot be called because credentials are not configured."""
    category = "Configuration Error"
    user_message = "Analysis unavailable: API key not configured."


class ReasoningServiceError(AnalysisError):
    """The call failed or timed out."""
    category = "Connection Error"
    user_message = "Analysis unavailable. Check connection and API key."


class ResponseFormatError(AnalysisError):
    """The service answered with content that is not the expected JSON."""
    category = "Response Format Error"
    user_message = "Unable to parse AI response."
