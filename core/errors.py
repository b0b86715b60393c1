# ============================================================================
# BUILDER EXCEPTIONS
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Foundation - Exception hierarchy
# PURPOSE: Typed failures for configuration, pipeline and provider errors
# CREATED: 06 OCT 2026
# ============================================================================
"""
Builder exceptions.

Every fatal pipeline error derives from BuilderError so the worker has a
single failure path. Provider soft failures (non-200 responses) are not
exceptions; they come back as None and the caller decides.
"""

from typing import Optional


class BuilderError(Exception):
    """Base exception for the function builder."""
    pass


# ============================================================================
# CONFIGURATION
# ============================================================================

class ConfigurationError(BuilderError, ValueError):
    """Missing or invalid configuration. Never retried."""
    pass


class UnknownRuntimeError(ConfigurationError):
    """Raised when no provider or toolchain is registered for a runtime."""

    def __init__(self, runtime: Optional[str]):
        self.runtime = runtime
        super().__init__(f'Runtime "{runtime}" not understood.')


# ============================================================================
# PIPELINE
# ============================================================================

class FunctionNotFoundError(BuilderError):
    """No function record exists for the requested id."""

    def __init__(self, function_id: str):
        self.function_id = function_id
        super().__init__(f"Function {function_id} not found")


class SourceExtractionError(BuilderError):
    """The source bundle could not be unpacked into a usable build root."""
    pass


class BuildToolError(BuilderError):
    """A build tool (npm, docker) exited non-zero."""

    def __init__(self, message: str, exit_code: Optional[int] = None):
        self.exit_code = exit_code
        super().__init__(message)


# ============================================================================
# PROVIDER
# ============================================================================

class ProviderError(BuilderError):
    """Base exception for FaaS provider failures."""
    pass


class ProviderUnavailableError(ProviderError):
    """The provider's application listing failed after all retries."""

    def __init__(self, message: str = "Could not get application list from provider"):
        super().__init__(message)


class ProviderRegistrationError(ProviderError):
    """The provider did not return the app or function the pipeline needs."""
    pass


__all__ = [
    "BuilderError",
    "ConfigurationError",
    "UnknownRuntimeError",
    "FunctionNotFoundError",
    "SourceExtractionError",
    "BuildToolError",
    "ProviderError",
    "ProviderUnavailableError",
    "ProviderRegistrationError",
]
