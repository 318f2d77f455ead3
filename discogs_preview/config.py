import os
from dataclasses import dataclass, field

from dotenv import load_dotenv


@dataclass(frozen=True)
class Config:
    discogs_token: str = ""
    calls_per_minute: int = 55
    cache_ttl_minutes: int = 10
    cache_max_entries: int = 50
    max_scrape_pages: int = 2
    discovery_cap: int = 5
    currency_rates: dict[str, float] = field(default_factory=dict)


def _int_env(key: str, default: int, minimum: int = 0) -> int:
    raw = os.environ.get(key, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"Invalid integer for {key}: {raw!r}") from None
    if value < minimum:
        raise ValueError(f"Invalid integer for {key}: {raw!r} (minimum {minimum})")
    return value


def parse_currency_rates(raw: str) -> dict[str, float]:
    """Parse "EUR=0.92,GBP=0.79" into a units-per-USD table."""
    rates: dict[str, float] = {}
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        code, sep, value = item.partition("=")
        code = code.strip().upper()
        try:
            rate = float(value)
        except ValueError:
            rate = 0.0
        if not sep or len(code) != 3 or rate <= 0:
            raise ValueError(f"Invalid CURRENCY_RATES entry: {item!r}")
        rates[code] = rate
    return rates


def load_config() -> Config:
    load_dotenv()
    return Config(
        discogs_token=os.environ.get("DISCOGS_TOKEN", "").strip(),
        calls_per_minute=_int_env("DISCOGS_CALLS_PER_MINUTE", 55, minimum=1),
        cache_ttl_minutes=_int_env("CACHE_TTL_MINUTES", 10),
        cache_max_entries=_int_env("CACHE_MAX_ENTRIES", 50, minimum=1),
        max_scrape_pages=_int_env("MAX_SCRAPE_PAGES", 2, minimum=1),
        discovery_cap=_int_env("DISCOVERY_CAP", 5, minimum=1),
        currency_rates=parse_currency_rates(os.environ.get("CURRENCY_RATES", "")),
    )
