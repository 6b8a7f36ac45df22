"""Configuration schema — Pydantic models for config.yaml."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class ExchangeConfig(BaseModel):
    base_url: str = "https://contract.mexc.com"
    ws_url: str = "wss://contract.mexc.com/edge"
    api_key: str = ""
    api_secret: str = ""
    recv_window_ms: int = Field(default=5000, gt=0)
    timeout_s: float = Field(default=5.0, gt=0)
    max_retries: int = Field(default=3, ge=1)


class RiskConfig(BaseModel):
    stop_loss_pct: float = Field(default=0.01, gt=0, lt=1)
    # None disables take-profit prices entirely
    take_profit_pct: float | None = Field(default=None, gt=0, lt=1)
    # 0 disables the trailing stop
    trailing_stop_pct: float = Field(default=0.005, ge=0, lt=1)
    max_open_positions: int = Field(default=3, ge=1)
    close_on_reverse_signal: bool = True
    min_profit_roi_for_trail: float = 80.0
    trail_drop_from_max_roi: float = Field(default=40.0, gt=0)
    leverage: int = Field(default=3, ge=1)
    position_size: float = Field(default=1.0, gt=0)
    attach_stops_to_order: bool = False


class StrategyConfig(BaseModel):
    breakout_volume_factor: float = Field(default=1.5, gt=0)
    breakout_lookback: int = Field(default=40, ge=1)
    min_volume_usd: float = Field(default=500_000, ge=0)
    max_volume_usd: float = Field(default=1_000_000, ge=0)
    min_listing_age_days: int = Field(default=21, ge=0)
    contracts_cache_ttl_s: float = Field(default=60.0, gt=0)

    @model_validator(mode="after")
    def _check_volume_band(self) -> StrategyConfig:
        if self.min_volume_usd > self.max_volume_usd:
            raise ValueError(
                f"min_volume_usd ({self.min_volume_usd}) exceeds "
                f"max_volume_usd ({self.max_volume_usd})"
            )
        return self


class KlinesConfig(BaseModel):
    interval: str = "1m"
    limit: int = Field(default=200, ge=50)


class SchedulerConfig(BaseModel):
    cycle_delay_s: float = Field(default=60.0, gt=0)
    batch_size: int = Field(default=10, ge=1)
    # None scans every market that passes the volume band
    max_symbols: int | None = Field(default=None, ge=1)


class PriceFeedConfig(BaseModel):
    enabled: bool = False
    staleness_s: float = Field(default=30.0, gt=0)


class TelegramConfig(BaseModel):
    bot_token: str = ""
    chat_id: str = ""


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "json"


class AppConfig(BaseModel):
    exchange: ExchangeConfig = Field(default_factory=ExchangeConfig)
    risk: RiskConfig = Field(default_factory=RiskConfig)
    strategy: StrategyConfig = Field(default_factory=StrategyConfig)
    klines: KlinesConfig = Field(default_factory=KlinesConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    price_feed: PriceFeedConfig = Field(default_factory=PriceFeedConfig)
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
