"""Tests for settings validation and key building."""

import pytest
from pydantic import ValidationError

from market_gateway.core.config import Settings


def test_log_settings_are_normalized():
    settings = Settings(log_level="debug", log_format="TEXT")

    assert settings.log_level == "DEBUG"
    assert settings.log_format == "text"


@pytest.mark.parametrize("field, value", [
    ("log_level", "chatty"),
    ("log_format", "xml"),
    ("order_book_key_pattern", "OrderBook:{asset_pair_id}"),
    ("feed_history_key_pattern", "FeedHistory:{side}"),
])
def test_invalid_values_rejected(field, value):
    with pytest.raises(ValidationError):
        Settings(**{field: value})


def test_cache_keys():
    settings = Settings()

    assert settings.get_order_book_key("BTCUSD", True) == "OrderBook:BTCUSD:True"
    assert settings.get_order_book_key("BTCUSD", False) == "OrderBook:BTCUSD:False"
    assert settings.get_feed_history_key("BTCUSD", "Ask") == "FeedHistory:BTCUSD:Ask"


def test_custom_key_pattern():
    settings = Settings(order_book_key_pattern="{asset_pair_id}_{is_buy}_book")

    assert settings.get_order_book_key("ETHUSD", False) == "ETHUSD_False_book"


def test_redis_url():
    assert Settings(redis_host="cache", redis_port=6380, redis_db=2).get_redis_url() == "redis://cache:6380/2"
    assert Settings(redis_password="secret").get_redis_url().startswith("redis://:secret@")


def test_comma_separated_lists():
    settings = Settings(cors_origins="https://a.example, https://b.example,", allowed_hosts="*")

    assert settings.get_cors_origins_list() == ["https://a.example", "https://b.example"]
    assert settings.get_allowed_hosts_list() == ["*"]
