"""
Agent Errors
============

Error taxonomy for the agent pipeline:

- CallerError: the payload is missing or malformed (HTTP 400). Raised
  before any downstream component runs.
- ConfigurationError: the provider credential is missing (HTTP 500).
  Raised before any outbound call.
- ProviderError: the LLM provider failed, timed out or returned no
  content (HTTP 500).
- AggregationError: a read of organizational context failed (HTTP 500).

Parse degradation is not an error: the normalizer always produces a
result, falling back to defaults.
"""


class AgentError(Exception):
    """Base class for every failure the agent router reports."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def error_type(self) -> str:
        return type(self).__name__


class CallerError(AgentError):
    """The request payload does not match what the agent needs."""

    status_code = 400


# The router's contract names this failure InvalidPayload
InvalidPayload = CallerError


class ConfigurationError(AgentError):
    """A required setting (the provider API key) is missing."""


class ProviderError(AgentError):
    """The LLM provider call failed or produced nothing usable."""


class AggregationError(AgentError):
    """Organizational context could not be read."""
