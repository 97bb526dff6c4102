# backend/tracker/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO HTTP knowledge.
The hosting service is responsible for mapping them to responses.

The position-accounting engine itself never raises for data-integrity
problems (those become Diagnostic records); these exceptions cover bad
caller arguments and failing collaborators.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    │   └── UnsupportedCurrencyError
    ├── MarketDataError
    │   └── ProviderUnavailableError
    └── FXRateError
        ├── FXProviderError
        └── FXConversionError

    CircuitBreakerOpen (from circuit_breaker module)
        - Raised when the FX source breaker is open
"""


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when a programmatic argument is invalid.

    Row-level input validation is handled by the Pydantic schemas; this is
    for arguments passed straight to the services.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class UnsupportedCurrencyError(ValidationError):
    """Raised when a display currency other than USD or THB is requested."""

    def __init__(self, currency: str) -> None:
        self.currency = currency
        super().__init__(
            f"Unsupported display currency: '{currency}'. Valid options: USD, THB",
            field="display_currency",
        )


# =============================================================================
# MARKET DATA ERRORS
# =============================================================================


class MarketDataError(ServiceError):
    """
    Base exception for price source failures.

    Attributes:
        provider: Name of the provider that failed
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)


class ProviderUnavailableError(MarketDataError):
    """
    Raised when a price source is temporarily unavailable
    (timeout, server error, maintenance).
    """

    def __init__(self, provider: str, reason: str) -> None:
        message = f"Provider '{provider}' is unavailable: {reason}"
        super().__init__(message, provider=provider)
        self.reason = reason


# =============================================================================
# FX RATE ERRORS
# =============================================================================


class FXRateError(ServiceError):
    """
    Base exception for FX rate errors.

    Attributes:
        base_currency: The base currency code
        quote_currency: The quote currency code
    """

    def __init__(
            self,
            message: str,
            base_currency: str | None = None,
            quote_currency: str | None = None,
    ) -> None:
        self.base_currency = base_currency
        self.quote_currency = quote_currency
        super().__init__(message)


class FXProviderError(FXRateError):
    """
    Raised when the FX source fails.

    Attributes:
        provider: Name of the FX data provider
        reason: Specific reason for failure
    """

    def __init__(self, provider: str, reason: str) -> None:
        self.provider = provider
        self.reason = reason
        super().__init__(
            f"FX provider '{provider}' error: {reason}",
            base_currency="USD",
            quote_currency="THB",
        )


class FXConversionError(FXRateError):
    """
    Raised when a conversion cannot be performed
    (unsupported currency, non-positive rate).

    Attributes:
        reason: Specific reason for conversion failure
    """

    def __init__(
            self,
            reason: str,
            base_currency: str | None = None,
            quote_currency: str | None = None,
    ) -> None:
        self.reason = reason
        super().__init__(
            f"FX conversion error: {reason}",
            base_currency=base_currency,
            quote_currency=quote_currency,
        )


# Re-export CircuitBreakerOpen for easier importing alongside other exceptions
from tracker.services.circuit_breaker import CircuitBreakerOpen  # noqa: E402

__all__ = [
    "ServiceError",
    "ValidationError",
    "UnsupportedCurrencyError",
    "MarketDataError",
    "ProviderUnavailableError",
    "FXRateError",
    "FXProviderError",
    "FXConversionError",
    "CircuitBreakerOpen",
]
