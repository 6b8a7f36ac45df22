"""Configuration system."""

from futures_core.config.loader import ensure_auth, load_config
from futures_core.config.schema import AppConfig, RiskConfig, StrategyConfig

__all__ = ["AppConfig", "RiskConfig", "StrategyConfig", "ensure_auth", "load_config"]
