"""
Relay error kinds.

Every failure that reaches a route is one of these. Routes map them to an
HTTP status and an ``ErrorResponse`` body; the streaming relay maps them to a
terminal ``error`` event. Messages on these exceptions may carry internal
detail and are only ever logged.
"""

from typing import Any, List, Optional


class RelayError(Exception):
    """Base class for all relay errors"""

    error_code = "RELAY_ERROR"


class InvalidPromptError(RelayError):
    """Prompt is missing or empty"""

    error_code = "INVALID_INPUT"


class MissingCredentialError(RelayError):
    """Provider API key is not configured"""

    error_code = "MISSING_CREDENTIAL"


class UpstreamError(RelayError):
    """Generation provider failed or was unreachable"""

    error_code = "UPSTREAM_FAILURE"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class OutputValidationError(RelayError):
    """Structured output did not parse or did not match the output model.

    ``raw_text`` keeps the provider text exactly as received so it can be
    inspected after the fact.
    """

    error_code = "VALIDATION_FAILURE"

    def __init__(self, message: str, raw_text: str, errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.raw_text = raw_text
        self.errors = errors or []


class UnknownSchemaError(RelayError):
    """No output model registered under the requested name"""

    error_code = "UNKNOWN_SCHEMA"
