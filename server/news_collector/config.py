"""
News Collector Configuration

Centralized configuration for the ingestion and analysis pipeline.
All environment variables MUST be defined here. No os.getenv() calls allowed elsewhere.
"""
from __future__ import annotations

import os
from dataclasses import dataclass


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def _optional_env(name: str, default: str = "") -> str:
    """Get an optional environment variable with a default."""
    return os.environ.get(name, default)


def _optional_env_int(name: str, default: int) -> int:
    """Get an optional integer environment variable with a default."""
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"Invalid integer value for {name}: {value}")


def _optional_env_float(name: str, default: float) -> float:
    """Get an optional float environment variable with a default."""
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"Invalid float value for {name}: {value}")


def _optional_env_bool(name: str, default: bool) -> bool:
    """Get an optional boolean environment variable with a default."""
    value = os.environ.get(name)
    if not value:
        return default
    return value.lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class DatabaseConfig:
    """SQLAlchemy connection configuration."""
    url: str
    echo: bool = False


@dataclass(frozen=True)
class RedisConfig:
    """Redis connection used by the notification queue and event mirror."""
    url: str
    notification_queue: str = "notification-send"


@dataclass(frozen=True)
class LLMConfig:
    """Groq chat-completion configuration."""
    api_key: str
    model: str
    timeout_s: float
    temperature: float = 0.3


@dataclass(frozen=True)
class CollectorConfig:
    """Feed polling configuration."""
    interval_s: int
    feed_delay_s: float
    fetch_timeout_s: float
    sources: str = ""  # comma-separated source names, empty = all


@dataclass(frozen=True)
class SocialConfig:
    """Truth Social polling configuration."""
    enabled: bool
    account_id: str
    username: str = "realDonaldTrump"
    api_base: str = "https://truthsocial.com/api/v1"


@dataclass(frozen=True)
class AnalysisConfig:
    """Classifier retry and worker pool configuration."""
    concurrency: int
    max_retries: int
    backoff_base_s: float


@dataclass(frozen=True)
class StorylineConfig:
    """Storyline clustering configuration."""
    interval_s: int
    window_days: int
    batch_limit: int
    min_articles: int = 3
    summarize: bool = True


@dataclass(frozen=True)
class AlertConfig:
    """Alert matching configuration."""
    max_article_age_minutes: int  # 0 = no freshness cut-off


@dataclass(frozen=True)
class EventsConfig:
    """Live event publisher configuration."""
    subscriber_queue_size: int
    redis_mirror: bool
    heartbeat_s: int = 30


@dataclass(frozen=True)
class Settings:
    """Root configuration container."""
    database: DatabaseConfig
    redis: RedisConfig
    llm: LLMConfig
    collector: CollectorConfig
    social: SocialConfig
    analysis: AnalysisConfig
    storylines: StorylineConfig
    alerts: AlertConfig
    events: EventsConfig


def _load_settings() -> Settings:
    """Load all settings from environment variables.

    GROQ_API_KEY is optional here so that --once collection runs work
    without a key; the Groq client fails at first call if it is missing.
    """
    return Settings(
        database=DatabaseConfig(
            url=_optional_env("DATABASE_URL", "sqlite:///news.db"),
            echo=_optional_env_bool("DATABASE_ECHO", False),
        ),
        redis=RedisConfig(
            url=_optional_env("REDIS_URL", "redis://localhost:6379/0"),
            notification_queue=_optional_env("NOTIFICATION_QUEUE", "notification-send"),
        ),
        llm=LLMConfig(
            api_key=_optional_env("GROQ_API_KEY", ""),
            model=_optional_env("LLM_MODEL", "llama-3.1-8b-instant"),
            timeout_s=_optional_env_float("LLM_TIMEOUT_S", 30.0),
        ),
        collector=CollectorConfig(
            interval_s=_optional_env_int("COLLECT_INTERVAL_S", 300),
            feed_delay_s=_optional_env_float("FEED_DELAY_S", 2.0),
            fetch_timeout_s=_optional_env_float("FETCH_TIMEOUT_S", 20.0),
            sources=_optional_env("FEED_SOURCES", ""),
        ),
        social=SocialConfig(
            enabled=_optional_env_bool("ENABLE_SOCIAL_SCRAPE", False),
            account_id=_optional_env("TRUTH_SOCIAL_ACCOUNT_ID", "107780257626128497"),
        ),
        analysis=AnalysisConfig(
            concurrency=_optional_env_int("ANALYSIS_CONCURRENCY", 3),
            max_retries=_optional_env_int("ANALYSIS_MAX_RETRIES", 3),
            backoff_base_s=_optional_env_float("ANALYSIS_BACKOFF_S", 1.0),
        ),
        storylines=StorylineConfig(
            interval_s=_optional_env_int("STORYLINE_INTERVAL_S", 3600),
            window_days=_optional_env_int("STORYLINE_WINDOW_DAYS", 7),
            batch_limit=_optional_env_int("STORYLINE_BATCH_LIMIT", 100),
            summarize=_optional_env_bool("STORYLINE_SUMMARIZE", True),
        ),
        alerts=AlertConfig(
            max_article_age_minutes=_optional_env_int("ALERT_MAX_AGE_MINUTES", 60),
        ),
        events=EventsConfig(
            subscriber_queue_size=_optional_env_int("EVENTS_QUEUE_SIZE", 100),
            redis_mirror=_optional_env_bool("EVENTS_REDIS_MIRROR", False),
            heartbeat_s=_optional_env_int("EVENTS_HEARTBEAT_S", 30),
        ),
    )


settings = _load_settings()
