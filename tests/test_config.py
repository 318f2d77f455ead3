import pytest

from discogs_preview.config import load_config, parse_currency_rates

ENV_KEYS = (
    "DISCOGS_TOKEN",
    "DISCOGS_CALLS_PER_MINUTE",
    "CACHE_TTL_MINUTES",
    "CACHE_MAX_ENTRIES",
    "MAX_SCRAPE_PAGES",
    "DISCOVERY_CAP",
    "CURRENCY_RATES",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for k in ENV_KEYS:
        monkeypatch.delenv(k, raising=False)
    monkeypatch.setattr("discogs_preview.config.load_dotenv", lambda: None)


def test_load_config_defaults():
    cfg = load_config()
    assert cfg.discogs_token == ""
    assert cfg.calls_per_minute == 55
    assert cfg.cache_ttl_minutes == 10
    assert cfg.cache_max_entries == 50
    assert cfg.max_scrape_pages == 2
    assert cfg.discovery_cap == 5
    assert cfg.currency_rates == {}


def test_load_config_custom(monkeypatch):
    monkeypatch.setenv("DISCOGS_TOKEN", "  tok  ")
    monkeypatch.setenv("DISCOGS_CALLS_PER_MINUTE", "25")
    monkeypatch.setenv("CACHE_TTL_MINUTES", "3")
    monkeypatch.setenv("MAX_SCRAPE_PAGES", "4")
    monkeypatch.setenv("CURRENCY_RATES", "eur=0.92, GBP=0.79")
    cfg = load_config()
    assert cfg.discogs_token == "tok"
    assert cfg.calls_per_minute == 25
    assert cfg.cache_ttl_minutes == 3
    assert cfg.max_scrape_pages == 4
    assert cfg.currency_rates == {"EUR": 0.92, "GBP": 0.79}


def test_load_config_bad_integer(monkeypatch):
    monkeypatch.setenv("DISCOVERY_CAP", "five")
    with pytest.raises(ValueError, match="DISCOVERY_CAP"):
        load_config()


@pytest.mark.parametrize("raw", ["EUR", "EUR=abc", "EURO=1.0", "EUR=0", "GBP=-1"])
def test_parse_currency_rates_invalid(raw):
    with pytest.raises(ValueError, match="CURRENCY_RATES"):
        parse_currency_rates(raw)


def test_parse_currency_rates_skips_empty_items():
    assert parse_currency_rates("CAD=1.36,,") == {"CAD": 1.36}
    assert parse_currency_rates("") == {}


@pytest.mark.parametrize("key", [
    "DISCOGS_CALLS_PER_MINUTE", "CACHE_MAX_ENTRIES", "MAX_SCRAPE_PAGES", "DISCOVERY_CAP",
])
def test_load_config_rejects_values_below_one(monkeypatch, key):
    monkeypatch.setenv(key, "0")
    with pytest.raises(ValueError, match=key):
        load_config()
