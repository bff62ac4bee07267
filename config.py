"""
Process-wide configuration.

Settings are read from the environment (and a ``.env`` file, when present)
once per process. Business logic receives ``Settings`` or ``PricingConfig``
explicitly and never touches ``os.environ`` itself.
"""

import logging
import math
import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

logger = logging.getLogger(__name__)

ENV_FILE = Path(__file__).parent / ".env"


class PricingConfig(BaseModel):
    """Parameters of the CNY -> CZK retail price formula."""

    model_config = ConfigDict(frozen=True)

    fx_rate: float = 3.5
    multiplier: float = 1.8
    shipping_fee: float = 89
    handling_fee: float = 0
    min_price: float = 249
    round_to: float = 10
    price_cap: float = 0  # 0 disables the cap


_NUMERIC_FIELDS = (
    "fx_rate",
    "multiplier",
    "shipping_fee",
    "handling_fee",
    "min_price",
    "round_to",
    "price_cap",
    "http_timeout",
)

# Leading decimal number of an env value, e.g. "3.5" in " 3.5 CZK"
_LEADING_NUMBER_RE = re.compile(r"\s*[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    access_token: str = Field(default="", alias="ACCESS_TOKEN")
    raindrop_token: str = Field(default="", alias="RAINDROP_TOKEN")

    fx_rate: float = Field(default=3.5, alias="FX_RATE_CNY")
    multiplier: float = Field(default=1.8, alias="MULTIPLIER")
    shipping_fee: float = Field(default=89, alias="SHIPPING_FEE")
    handling_fee: float = Field(default=0, alias="HANDLING_FEE")
    min_price: float = Field(default=249, alias="MIN_PRICE")
    round_to: float = Field(default=10, alias="ROUND_TO")
    price_cap: float = Field(default=0, alias="PRICE_CAP")

    user_agent: str = Field(default="Mozilla/5.0", alias="USER_AGENT")
    http_timeout: float = Field(default=20.0, alias="HTTP_TIMEOUT")
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator(*_NUMERIC_FIELDS, mode="before")
    @classmethod
    def _finite_or_default(cls, v: Any, info: ValidationInfo) -> Any:
        """Read the leading number ("12abc" -> 12); anything else falls back to the default."""
        default = cls.model_fields[info.field_name].default
        if isinstance(v, str):
            match = _LEADING_NUMBER_RE.match(v)
            v = match.group(0) if match else v
        try:
            number = float(v)
        except (TypeError, ValueError):
            logger.debug("Ignoring non-numeric %s=%r", info.field_name, v)
            return default
        return number if math.isfinite(number) else default

    @field_validator("access_token", "raindrop_token", mode="before")
    @classmethod
    def _strip_token(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @property
    def pricing(self) -> PricingConfig:
        return PricingConfig(
            fx_rate=self.fx_rate,
            multiplier=self.multiplier,
            shipping_fee=self.shipping_fee,
            handling_fee=self.handling_fee,
            min_price=self.min_price,
            round_to=self.round_to,
            price_cap=self.price_cap,
        )

    @property
    def allowed_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    """Build Settings from an environment mapping (``os.environ`` by default)."""
    if environ is None:
        load_dotenv(ENV_FILE if ENV_FILE.exists() else None)
        environ = dict(os.environ)
    known = {f.alias for f in Settings.model_fields.values() if f.alias}
    return Settings(**{k: v for k, v in environ.items() if k in known})


@lru_cache()
def get_settings() -> Settings:
    return load_settings()
