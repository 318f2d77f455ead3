import argparse
import asyncio
import logging
import sys

import httpx

from discogs_preview.cache import SearchCache
from discogs_preview.config import load_config
from discogs_preview.discogs import DiscogsClient, DiscogsError, MissingTokenError
from discogs_preview.marketplace import MarketplaceClient, SearchDiscovery
from discogs_preview.pipeline import NoResultsError, PreviewService
from discogs_preview.rate_limiter import RateLimiter
from discogs_preview.report import format_filtered, format_result
from discogs_preview.text import clean_title

log = logging.getLogger("discogs_preview")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="discogs_preview",
        description="Look up Discogs vinyl prices for a video title.",
    )
    parser.add_argument("title", help='raw video title, e.g. "Artist - Track (Official Video)"')
    parser.add_argument("--us-only", action="store_true", help="only listings shipping from the US")
    parser.add_argument("--vg-plus", action="store_true", help="only VG+ or better media")
    parser.add_argument("--select", type=int, default=None, metavar="N",
                        help="restrict filtered stats to match N")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


async def run(args: argparse.Namespace) -> int:
    config = load_config()
    query = clean_title(args.title)
    if not query:
        print("Nothing to search for in that title.", file=sys.stderr)
        return 1

    limiter = RateLimiter(calls_per_minute=config.calls_per_minute)
    cache = SearchCache(
        ttl=config.cache_ttl_minutes * 60, max_entries=config.cache_max_entries
    )

    async with (
        DiscogsClient(config.discogs_token, limiter) as client,
        MarketplaceClient(limiter) as market,
        SearchDiscovery() as discovery,
    ):
        service = PreviewService(
            client, market, discovery,
            cache=cache,
            currency_rates=config.currency_rates,
            max_scrape_pages=config.max_scrape_pages,
            discovery_cap=config.discovery_cap,
        )
        try:
            result = await service.search(query)
            print(format_result(result))
            if args.us_only or args.vg_plus or args.select is not None:
                view = await service.filtered(
                    query, args.us_only, args.vg_plus, args.select
                )
                print()
                print(format_filtered(view))
        except MissingTokenError:
            print("No Discogs token configured. Set DISCOGS_TOKEN in the "
                  "environment or a .env file.", file=sys.stderr)
            return 2
        except NoResultsError:
            print("No Discogs results found for this title.", file=sys.stderr)
            return 1
        except IndexError as exc:
            print(str(exc), file=sys.stderr)
            return 1
        except (DiscogsError, httpx.HTTPError) as exc:
            log.error("search failed: %s", exc)
            print("Discogs lookup failed, try again later.", file=sys.stderr)
            return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
