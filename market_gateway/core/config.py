"""
Configuration management for Market Gateway Service.
Uses pydantic-settings for environment variable management.
"""

from typing import List, Optional
from pydantic import Field, validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application metadata
    app_name: str = Field(default="Market Gateway")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)
    server_host: str = Field(default="0.0.0.0")
    server_port: int = Field(default=8000)

    # HTTP surface
    cors_origins: str = Field(default="*")
    allowed_hosts: str = Field(default="*")

    # Redis configuration (order books and feed history)
    redis_host: str = Field(default="localhost")
    redis_port: int = Field(default=6379)
    redis_db: int = Field(default=0)
    redis_password: Optional[str] = Field(default=None)

    # Backing service endpoints
    assets_service_url: str = Field(default="http://assets.svc.local")
    market_profile_service_url: str = Field(default="http://market-profile.svc.local")
    candles_spot_url: str = Field(default="http://candles-history.svc.local")
    candles_mt_url: str = Field(default="http://mt-candles-history.svc.local")
    blockchain_explorer_url: str = Field(default="http://explorer.svc.local")

    # Outbound HTTP behaviour
    http_timeout: float = Field(default=30.0)
    http_max_retries: int = Field(default=3)

    # Cache key patterns
    order_book_key_pattern: str = Field(default="OrderBook:{asset_pair_id}:{is_buy}")
    feed_history_key_pattern: str = Field(default="FeedHistory:{asset_pair_id}:{side}")

    # Reference data refresh (in seconds)
    assets_cache_ttl: int = Field(default=300)  # 5 minutes
    asset_list_update_interval: int = Field(default=60)  # 1 minute

    # Raise instead of logging when a candle window holds more than one bucket
    strict_candle_alignment: bool = Field(default=False)

    # Logging configuration
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    @validator('log_level')
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}")
        return v.upper()

    @validator('log_format')
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = {'json', 'text'}
        if v.lower() not in valid_formats:
            raise ValueError(f"log_format must be one of: {', '.join(valid_formats)}")
        return v.lower()

    @validator('order_book_key_pattern')
    def validate_order_book_key_pattern(cls, v: str) -> str:
        """Order book keys must be derived from both the pair and the side."""
        if '{asset_pair_id}' not in v or '{is_buy}' not in v:
            raise ValueError("order_book_key_pattern must contain {asset_pair_id} and {is_buy}")
        return v

    @validator('feed_history_key_pattern')
    def validate_feed_history_key_pattern(cls, v: str) -> str:
        """Feed history keys must be derived from both the pair and the side."""
        if '{asset_pair_id}' not in v or '{side}' not in v:
            raise ValueError("feed_history_key_pattern must contain {asset_pair_id} and {side}")
        return v

    def get_cors_origins_list(self) -> List[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(',') if origin.strip()]

    def get_allowed_hosts_list(self) -> List[str]:
        """Get trusted hosts as a list."""
        return [host.strip() for host in self.allowed_hosts.split(',') if host.strip()]

    def get_redis_url(self) -> str:
        """Get Redis connection URL."""
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    def get_order_book_key(self, asset_pair_id: str, is_buy: bool) -> str:
        """Build the order book cache key for one side of a pair."""
        return self.order_book_key_pattern.format(asset_pair_id=asset_pair_id, is_buy=is_buy)

    def get_feed_history_key(self, asset_pair_id: str, side: str) -> str:
        """Build the feed history key for one price side of a pair."""
        return self.feed_history_key_pattern.format(asset_pair_id=asset_pair_id, side=side)

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global settings instance
settings = Settings()
