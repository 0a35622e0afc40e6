"""Configuration system using pydantic-settings with environment variable loading."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class ExchangeSettings(BaseSettings):
    """Bybit public market-data connection settings."""

    model_config = SettingsConfigDict(env_prefix="BYBIT_")

    testnet: bool = False
    timeout_ms: int = 10_000  # per HTTP call; a stuck call only loses its own sample
    enable_rate_limit: bool = True


class SamplerSettings(BaseSettings):
    """Batch sizes and inter-batch pauses for historical candle sampling.

    The pause is the only backpressure against the upstream API, so batch
    size doubles as the concurrency bound.
    """

    model_config = SettingsConfigDict(env_prefix="SAMPLER_")

    change_batch_size: int = 30
    change_batch_delay: float = 0.1  # seconds
    volume_batch_size: int = 50
    volume_batch_delay: float = 0.05  # seconds


class RankingSettings(BaseSettings):
    """Table sizes for the ranking computer."""

    model_config = SettingsConfigDict(env_prefix="RANKING_")

    top_n: int = 10
    funding_top_n: int = 15


class ExclusionSettings(BaseSettings):
    """Rolling daily top-volume history used to suppress chronic leaders.

    A base asset seen in the daily top ``top_count`` on at least
    ``min_occurrences`` of the retained ``window_days`` records is excluded
    from the volume-mover tables.
    """

    model_config = SettingsConfigDict(env_prefix="EXCLUSION_")

    window_days: int = 7
    top_count: int = 20
    min_occurrences: int = 5
    backfill_enabled: bool = True
    backfill_day_delay: float = 0.2  # seconds between backfilled days


class SchedulerSettings(BaseSettings):
    """Refresh cadences (seconds) for the three independent loops."""

    model_config = SettingsConfigDict(env_prefix="SCHEDULER_")

    refresh_interval_gainers: float = 300.0
    refresh_interval_volume: float = 300.0
    refresh_interval_funding: float = 60.0


class ApiSettings(BaseSettings):
    """Read-only JSON API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 8080


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: str = "console"  # "json" for machine-readable output
    exchange: ExchangeSettings = ExchangeSettings()
    sampler: SamplerSettings = SamplerSettings()
    ranking: RankingSettings = RankingSettings()
    exclusion: ExclusionSettings = ExclusionSettings()
    scheduler: SchedulerSettings = SchedulerSettings()
    api: ApiSettings = ApiSettings()
