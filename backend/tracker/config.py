# backend/tracker/config.py
"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables with validation:
- ENVIRONMENT: Runtime mode (development, test, production)
- LOG_LEVEL / LOG_FORMAT: Logging output
- DEFAULT_FX_RATE: USD/THB rate used when no live rate is available
- CASH_*: The explicit cash / stablecoin classification lists

The cash lists are configuration on purpose: whether a ticker is cash is
never inferred from price data. List values may be given as JSON arrays
in the environment (e.g. CASH_TICKERS='["USD","THB","USDT"]').

Usage:
    from tracker.config import settings

    if settings.is_production:
        ...
"""
from decimal import Decimal
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Find the .env file in project root (parent of backend/)
_BACKEND_DIR = Path(__file__).resolve().parent.parent
_PROJECT_ROOT = _BACKEND_DIR.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables:
        - ENVIRONMENT: Runtime environment (development, test, production)
        - LOG_LEVEL: Logging level (default: "INFO")
        - LOG_FORMAT: "text" or "json" (default: "text")
        - DEFAULT_FX_RATE: Fallback THB per 1 USD (default: 35.0)
        - DEFAULT_DISPLAY_CURRENCY: USD or THB (default: USD)

    Position accounting:
        - DUST_EPSILON: Quantities below this magnitude are zero (default: 1e-9)
        - CASH_FACE_TOLERANCE: Relative drift allowed for cash avg_cost
    """

    environment: Literal["development", "test", "production"] = Field(
        default="development",
        description="Runtime environment (development, test, production)"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: Literal["text", "json"] = Field(
        default="text",
        description="Log output format"
    )

    # =========================================================================
    # FX & DISPLAY
    # =========================================================================
    default_fx_rate: Decimal = Field(
        default=Decimal("35.0"),
        gt=0,
        description="THB per 1 USD used when the FX source fails"
    )
    default_display_currency: Literal["USD", "THB"] = Field(
        default="USD",
        description="Display currency when the caller does not choose one"
    )

    # =========================================================================
    # POSITION ACCOUNTING
    # =========================================================================
    dust_epsilon: Decimal = Field(
        default=Decimal("1e-9"),
        gt=0,
        description="Absolute quantity below which a position is closed"
    )
    cash_face_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        gt=0,
        description="Relative deviation of cash avg_cost from face value"
    )
    log_position_warnings: bool | None = Field(
        default=None,
        description="Log validation diagnostics (default: on outside production)"
    )

    # =========================================================================
    # CASH CLASSIFICATION
    # =========================================================================
    cash_tickers: list[str] = Field(
        default=[
            "USD", "THB",
            "USDT", "USDC", "BUSD", "DAI", "TUSD", "FRAX",
            "USDP", "PYUSD", "FDUSD",
        ],
        description="Exact tickers treated as cash or stablecoins"
    )
    thb_cash_tickers: list[str] = Field(
        default=["THB", "CASH-THB", "THB-CASH"],
        description="Exact tickers treated as THB-denominated cash"
    )
    cash_prefixes: list[str] = Field(
        default=["CASH-"],
        description="Ticker prefixes marking a cash position (CASH-USD)"
    )
    cash_suffixes: list[str] = Field(
        default=["-CASH"],
        description="Ticker suffixes marking a cash position (USD-CASH)"
    )
    stablecoin_prefixes: list[str] = Field(
        default=["USDT", "USDC", "BUSD", "DAI", "TUSD", "FRAX"],
        description="Stablecoin roots whose bridged variants (USDC.E) are cash"
    )

    # =========================================================================
    # FX SOURCE CIRCUIT BREAKER
    # =========================================================================
    fx_breaker_failure_threshold: int = Field(default=3, ge=1)
    fx_breaker_recovery_timeout: float = Field(default=300.0, ge=0)

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE) if _ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator(
        "cash_tickers",
        "thb_cash_tickers",
        "cash_prefixes",
        "cash_suffixes",
        "stablecoin_prefixes",
    )
    @classmethod
    def normalize_ticker_lists(cls, v: list[str]) -> list[str]:
        """Trim and uppercase every configured ticker fragment."""
        return [item.strip().upper() for item in v if item and item.strip()]

    @model_validator(mode="after")
    def resolve_position_warnings(self) -> "Settings":
        """Default position warning logging to on outside production."""
        if self.log_position_warnings is None:
            object.__setattr__(
                self, "log_position_warnings", not self.is_production
            )
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


# Create single instance
settings = Settings()
