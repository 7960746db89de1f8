"""
Error taxonomy for the analyze endpoint.

Rationale:
- One base class carrying the HTTP status the adapters should answer with.
- Input/method errors are safe to show the caller; everything else is
  collapsed into a generic message by the adapters.
"""

GENERIC_ERROR_MESSAGE = "An error occurred during analysis. Please try again later."


class ServiceError(Exception):
    """Base exception class for analysis errors."""

    def __init__(self, message, status_code=500, service_name="AnalyzeService", details=None):
        self.message = message
        self.status_code = status_code
        self.service_name = service_name
        self.details = details
        full_message = f"[{self.service_name} Error][Status {self.status_code}]: {self.message}"
        if self.details:
            full_message += f" | Details: {str(self.details)}"
        super().__init__(full_message)


class InputError(ServiceError):
    """The request did not carry a usable topic."""

    def __init__(self, message="Please provide a research topic", details=None):
        super().__init__(message, status_code=400, service_name="Input", details=details)


class MethodNotAllowedError(ServiceError):
    def __init__(self, method=None):
        super().__init__("Method not allowed", status_code=405, service_name="Router", details=method)


class ConfigurationError(ServiceError):
    def __init__(self, message, details=None):
        super().__init__(message, status_code=500, service_name="Configuration", details=details)


class ProviderError(ServiceError):
    """Any failure while talking to the generative-AI provider."""

    def __init__(self, message, details=None):
        super().__init__(message, status_code=500, service_name="Gemini", details=details)


class ProviderTimeoutError(ProviderError):
    pass


class MalformedOutputError(ProviderError):
    """The extraction call returned an object that does not fit the chart schema."""
