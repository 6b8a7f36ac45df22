"""Config loader — reads YAML, applies environment overrides."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from futures_core.config.schema import AppConfig
from futures_core.errors import ConfigurationError

# env var -> (section, field)
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "MEXC_API_KEY": ("exchange", "api_key"),
    "MEXC_API_SECRET": ("exchange", "api_secret"),
    "FUTURES_BASE_URL": ("exchange", "base_url"),
    "WS_FUTURES_URL": ("exchange", "ws_url"),
    "RECV_WINDOW": ("exchange", "recv_window_ms"),
    "LEVERAGE": ("risk", "leverage"),
    "POSITION_SIZE_USDT": ("risk", "position_size"),
    "STOP_LOSS_PCT": ("risk", "stop_loss_pct"),
    "TAKE_PROFIT_PCT": ("risk", "take_profit_pct"),
    "TRAILING_STOP_PCT": ("risk", "trailing_stop_pct"),
    "RISK_MAX_OPEN_POSITIONS": ("risk", "max_open_positions"),
    "MIN_PROFIT_ROI_FOR_TRAIL": ("risk", "min_profit_roi_for_trail"),
    "TRAIL_DROP_FROM_MAX_ROI": ("risk", "trail_drop_from_max_roi"),
    "STRATEGY_MIN_VOLUME_USD": ("strategy", "min_volume_usd"),
    "STRATEGY_MAX_VOLUME_USD": ("strategy", "max_volume_usd"),
    "STRATEGY_BREAKOUT_VOL_FACTOR": ("strategy", "breakout_volume_factor"),
    "TELEGRAM_BOT_TOKEN": ("telegram", "bot_token"),
    "TELEGRAM_CHAT_ID": ("telegram", "chat_id"),
    "TRADING_LOG_LEVEL": ("logging", "level"),
    "TRADING_LOG_FORMAT": ("logging", "format"),
}


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from a YAML file, then apply env var overrides.

    If *path* is None or the file doesn't exist, starts from defaults.
    Every variable in ``_ENV_OVERRIDES`` replaces its field when set and
    non-empty. ``CLOSE_ON_REVERSE_SIGNAL`` is true only when set to ``1``.

    Raises ConfigurationError if the resulting config does not validate.
    """
    data: dict[str, Any] = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p) as f:
                data = yaml.safe_load(f) or {}

    for env_name, (section, field) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            data.setdefault(section, {})[field] = value

    reverse = os.environ.get("CLOSE_ON_REVERSE_SIGNAL")
    if reverse:
        data.setdefault("risk", {})["close_on_reverse_signal"] = reverse.strip() == "1"

    try:
        return AppConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid configuration: {exc}") from exc


def ensure_auth(config: AppConfig) -> None:
    """Raise ConfigurationError unless exchange credentials are present."""
    if not config.exchange.api_key or not config.exchange.api_secret:
        raise ConfigurationError("Missing MEXC_API_KEY or MEXC_API_SECRET")
