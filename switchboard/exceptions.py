"""Custom exception hierarchy for switchboard.

Provides precise error classification across the loader, registration
sync, gateway and router, so callers can tell fatal startup errors from
recoverable ones without string matching.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Classification of errors for retry and escalation decisions."""
    TRANSIENT = "transient"          # Worth retrying (timeout, rate limit, 5xx)
    PERMANENT = "permanent"          # Not worth retrying (bad input, 4xx)
    INFRASTRUCTURE = "infrastructure"  # Missing config, bad credentials


class SwitchboardError(Exception):
    """Base exception for all switchboard errors.

    Attributes:
        message: Human-readable error description.
        category: Error classification for retry/escalation decisions.
        module: Originating module name (e.g. "loader", "sync").
        context: Arbitrary key-value pairs for structured logging.
    """

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.message = message
        self.category = category
        self.module = module
        self.context = context
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Whether this error is worth retrying."""
        return self.category == ErrorCategory.TRANSIENT

    def __str__(self) -> str:
        parts = [self.message or self.__class__.__name__]
        if self.module:
            parts.append(f"[module={self.module}]")
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"({ctx})")
        return " ".join(parts)

    def __repr__(self) -> str:
        cls = self.__class__.__name__
        return (
            f"{cls}({self.message!r}, category={self.category.value!r}, "
            f"module={self.module!r})"
        )


# ---------------------------------------------------------------------------
# Configuration exceptions
# ---------------------------------------------------------------------------

class ConfigurationError(SwitchboardError):
    """Invalid or missing configuration.

    Defaults to INFRASTRUCTURE because config issues are environmental
    and won't resolve by retrying.

    Attributes:
        missing: Names of required settings that were not provided.
    """

    def __init__(
        self,
        message: str = "",
        *,
        missing: Optional[list[str]] = None,
        category: ErrorCategory = ErrorCategory.INFRASTRUCTURE,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.missing = list(missing or [])
        super().__init__(
            message, category=category, module=module or "config", **context
        )


# ---------------------------------------------------------------------------
# Handler loading exceptions
# ---------------------------------------------------------------------------

class HandlerLoadError(SwitchboardError):
    """A single handler file could not be loaded or failed validation.

    Attributes:
        source: Path of the offending handler file.
    """

    def __init__(
        self,
        message: str = "",
        *,
        source: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.source = source
        super().__init__(
            message, category=category, module=module or "loader", **context
        )


class HandlerConflictError(SwitchboardError):
    """Two handler units declared the same identity (strict mode only).

    Attributes:
        identity: The duplicated command name or routing key.
        sources: Files that declared it, in load order.
    """

    def __init__(
        self,
        message: str = "",
        *,
        identity: Optional[str] = None,
        sources: Optional[list[str]] = None,
        category: ErrorCategory = ErrorCategory.INFRASTRUCTURE,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.identity = identity
        self.sources = list(sources or [])
        super().__init__(
            message, category=category, module=module or "registry", **context
        )


# ---------------------------------------------------------------------------
# Remote registration exceptions
# ---------------------------------------------------------------------------

class RegistrationError(SwitchboardError):
    """The bulk command registration call failed.

    Attributes:
        status: HTTP status code (if a response was received).
    """

    def __init__(
        self,
        message: str = "",
        *,
        status: Optional[int] = None,
        category: ErrorCategory = ErrorCategory.TRANSIENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.status = status
        super().__init__(
            message, category=category, module=module or "sync", **context
        )


# ---------------------------------------------------------------------------
# Gateway exceptions
# ---------------------------------------------------------------------------

class GatewayError(SwitchboardError):
    """Error on the persistent gateway connection."""

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.TRANSIENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        super().__init__(
            message, category=category, module=module or "gateway", **context
        )


class GatewayAuthError(GatewayError):
    """The gateway rejected our credentials. Fatal at startup."""

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.INFRASTRUCTURE,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        super().__init__(message, category=category, module=module, **context)


# ---------------------------------------------------------------------------
# Interaction exceptions
# ---------------------------------------------------------------------------

class InteractionAlreadyAcknowledged(SwitchboardError):
    """reply() or defer() called on an interaction that was already answered."""

    def __init__(
        self,
        message: str = "",
        *,
        interaction_id: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.interaction_id = interaction_id
        super().__init__(
            message or "Interaction has already been acknowledged",
            category=category,
            module=module or "events",
            **context,
        )
