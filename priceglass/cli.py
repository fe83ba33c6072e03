"""
Command-line front end for Price Glass.
"""
import argparse
import asyncio
import json
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from priceglass.agent import CompareAgent, CompareOutcome
from priceglass.config import config
from priceglass.currency import convert_price, format_number
from priceglass.errors import ConfigError, StorageError, ValidationError
from priceglass.events import COUNTRY_CHANGED, LOCATION_CHANGED, event_bus
from priceglass.logger import logger
from priceglass.models.country import CountryTable
from priceglass.models.pricing import CrawlFailure, StorePrice
from priceglass.services.geo_service import Coordinates, GeoService
from priceglass.services.search_service import SearchService, search_service
from priceglass.storage import BaseStorage, create_storage
from priceglass.stores import CountryStore, HistoryStore, LocationStore, SearchTermStore
from priceglass.utils.retry import RetryPolicy

# prices come back quoted for the Indian market
SOURCE_CURRENCY = "INR"

REMEDIATION_TIPS = (
    "Check that the product name is spelled correctly",
    "Try a more general search term",
    "Paste the full product URL including https://",
    "Make sure the price service is running (priceglass serve)",
)


@dataclass
class AppContext:
    storage: BaseStorage
    countries: CountryTable
    country_store: CountryStore
    location_store: LocationStore
    history: HistoryStore
    recent_terms: SearchTermStore
    search_service: SearchService

    async def close(self):
        await self.search_service.close()
        await self.storage.close()


def build_country_table() -> CountryTable:
    try:
        return CountryTable(default_code=config.DEFAULT_COUNTRY)
    except ValueError as e:
        raise ConfigError(f"DEFAULT_COUNTRY is not a supported country: {e}") from e


async def build_context() -> AppContext:
    storage = create_storage()
    await storage.initialize()
    countries = build_country_table()
    await search_service.initialize()
    return AppContext(
        storage=storage,
        countries=countries,
        country_store=CountryStore(storage, countries),
        location_store=LocationStore(storage),
        history=HistoryStore(storage),
        recent_terms=SearchTermStore(storage),
        search_service=search_service,
    )


def _print_progress(value: int):
    sys.stderr.write(f"\rSearching stores... {value:3d}%")
    if value >= 100:
        sys.stderr.write("\n")
    sys.stderr.flush()


def _format_row(record: StorePrice, country, marker: str) -> str:
    price = convert_price(record.price, country, SOURCE_CURRENCY)
    extras = []
    if record.regular_price is not None:
        extras.append(f"was {convert_price(str(record.regular_price), country, SOURCE_CURRENCY)}")
    if record.discount_percentage is not None:
        extras.append(f"-{format_number(record.discount_percentage, 0)}%")
    if record.vendor_rating is not None:
        extras.append(f"{record.vendor_rating:.1f}★")
    if record.available is False:
        extras.append("out of stock")
    elif record.availability_count is not None:
        extras.append(f"{record.availability_count} left")

    line = f"{marker} {record.store:<16} {price:>16}  {', '.join(extras)}"
    if record.url:
        line += f"\n    {record.url}"
    return line


def render_outcome(outcome: CompareOutcome, country) -> str:
    if isinstance(outcome.result, CrawlFailure):
        tips = "\n".join(f"  - {tip}" for tip in REMEDIATION_TIPS)
        return f"Search failed: {outcome.result.error}\nTips:\n{tips}"

    lines = [f"Results for '{outcome.query}' ({outcome.kind.value}), prices in {country.currency.code}:"]
    for record in outcome.ranked:
        marker = "*" if record is outcome.best else " "
        lines.append(_format_row(record, country, marker))
    if outcome.best is not None:
        lines.append(f"Best deal: {outcome.best.store} at {convert_price(outcome.best.price, country, SOURCE_CURRENCY)}")
    return "\n".join(lines)


async def cmd_search(ctx: AppContext, args) -> int:
    country = await ctx.country_store.get()
    agent = CompareAgent(
        ctx.search_service, ctx.history, ctx.recent_terms,
        retry_policy=RetryPolicy.from_config(),
    )
    try:
        outcome = await agent.search(args.query, on_progress=None if args.quiet else _print_progress)
    except ValidationError as e:
        print(f"Error: {e}")
        return 2

    if args.json:
        print(json.dumps(outcome.result.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(render_outcome(outcome, country))
    return 0 if outcome.result.success else 1


async def cmd_history(ctx: AppContext, args) -> int:
    if args.clear:
        await ctx.history.clear()
        await ctx.recent_terms.clear()
        print("Search history cleared")
        return 0
    if args.delete:
        if await ctx.history.delete(args.delete):
            print(f"Removed {args.delete}")
            return 0
        print(f"No history item {args.delete}")
        return 1
    if args.recent:
        for term in await ctx.recent_terms.get():
            print(term)
        return 0

    items = await ctx.history.get()
    if not items:
        print("No search history yet")
    for item in items:
        when = datetime.fromtimestamp(item.timestamp / 1000).strftime("%Y-%m-%d %H:%M")
        best = f"  best: {item.best_price.store} {item.best_price.price}" if item.best_price else ""
        print(f"{item.id}  {when}  [{item.type.value}] {item.query}{best}")
    return 0


async def cmd_country(ctx: AppContext, args) -> int:
    if args.list:
        for country in ctx.countries:
            print(f"{country.flag} {country.code}  {country.name} ({country.currency.code} {country.currency.symbol})")
        return 0
    if args.code:
        country = ctx.countries.get(args.code)
        if country is None:
            print(f"Unknown country code: {args.code}")
            return 1
        await ctx.country_store.set(country)
        return 0

    country = await ctx.country_store.get()
    print(f"{country.flag} {country.name}, {country.currency.name} ({country.currency.symbol})")
    return 0


async def cmd_locate(ctx: AppContext, args) -> int:
    geo = GeoService(ctx.countries, ctx.location_store)
    await geo.initialize()
    try:
        coordinates = None
        if args.lat is not None and args.lon is not None:
            coordinates = Coordinates(args.lat, args.lon)
        detected = await geo.auto_detect_country(coordinates)
    finally:
        await geo.close()

    if detected is None:
        print("Location unavailable")
        return 1
    if args.apply:
        await ctx.country_store.set(detected.country)
    return 0


async def cmd_chat(ctx: AppContext, args) -> int:
    response = await ctx.search_service.chat(args.message, args.context)
    if not response.get("success"):
        print("I'm having trouble connecting right now. Please try again in a moment.")
        return 1
    print(response.get("message", ""))
    return 0


async def cmd_summarize(ctx: AppContext, args) -> int:
    response = await ctx.search_service.summarize(args.text)
    if not response.get("success"):
        print(f"Error: {response.get('error')}")
        return 1
    print(response.get("summary", ""))
    return 0


async def cmd_reviews(ctx: AppContext, args) -> int:
    response = await ctx.search_service.analyze_reviews(args.reviews)
    if not response.get("success"):
        print(f"Error: {response.get('error')}")
        return 1
    print(json.dumps(response.get("analysis", {}), indent=2, ensure_ascii=False))
    return 0


async def cmd_lookup(ctx: AppContext, args) -> int:
    if args.query.strip().isdigit():
        response = await ctx.search_service.lookup_barcode(args.query.strip())
    else:
        response = await ctx.search_service.lookup_by_name(args.query)
    if not response.get("success"):
        print(f"Error: {response.get('error')}")
        return 1
    print(json.dumps(response.get("product", {}), indent=2, ensure_ascii=False))
    return 0


async def cmd_convert(ctx: AppContext, args) -> int:
    country = ctx.countries.get(args.country) if args.country else await ctx.country_store.get()
    if country is None:
        print(f"Unknown country code: {args.country}")
        return 1
    print(convert_price(args.price, country, args.source))
    return 0


COMMANDS = {
    "search": cmd_search,
    "history": cmd_history,
    "country": cmd_country,
    "locate": cmd_locate,
    "chat": cmd_chat,
    "summarize": cmd_summarize,
    "reviews": cmd_reviews,
    "lookup": cmd_lookup,
    "convert": cmd_convert,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="priceglass", description="AI-powered price comparison")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("search", help="Compare prices for a product URL, name or barcode")
    p.add_argument("query", type=str, help='e.g. "iPhone 13", a product URL or 8901030865278')
    p.add_argument("--json", action="store_true", help="Print the raw result envelope")
    p.add_argument("--quiet", action="store_true", help="No progress indicator")

    p = sub.add_parser("history", help="Show or edit search history")
    group = p.add_mutually_exclusive_group()
    group.add_argument("--clear", action="store_true")
    group.add_argument("--delete", metavar="ID")
    group.add_argument("--recent", action="store_true", help="Plain list of recent search terms")

    p = sub.add_parser("country", help="Show or set the display country")
    p.add_argument("code", nargs="?", help="ISO country code, e.g. US")
    p.add_argument("--list", action="store_true")

    p = sub.add_parser("locate", help="Detect country and city from coordinates")
    p.add_argument("--lat", type=float)
    p.add_argument("--lon", type=float)
    p.add_argument("--apply", action="store_true", help="Also use the detected country for prices")

    p = sub.add_parser("chat", help="Ask the shopping assistant")
    p.add_argument("message", type=str)
    p.add_argument("--context", default="general")

    p = sub.add_parser("summarize", help="Summarize a product description")
    p.add_argument("text", type=str)

    p = sub.add_parser("reviews", help="Analyze review sentiment")
    p.add_argument("reviews", nargs="+")

    p = sub.add_parser("lookup", help="Look up product details by barcode or name")
    p.add_argument("query", type=str)

    p = sub.add_parser("convert", help="Convert a price to the display currency")
    p.add_argument("price", type=str)
    p.add_argument("--source", default="USD", help="Currency the price is quoted in")
    p.add_argument("--country", help="Target country code (default: selected country)")

    p = sub.add_parser("serve", help="Run the price function HTTP server")
    p.add_argument("--host", default="0.0.0.0")
    p.add_argument("--port", type=int, default=8000)

    return parser


def _on_country_changed(country):
    print(f"Country set to {country.name}. Prices will now display in "
          f"{country.currency.name} ({country.currency.symbol})")


def _on_location_changed(location):
    place = f"{location.city}, {location.country}" if location.city else location.country
    print(f"Location: {place}")


def _subscribe_notifications():
    return [
        event_bus.subscribe(COUNTRY_CHANGED, _on_country_changed),
        event_bus.subscribe(LOCATION_CHANGED, _on_location_changed),
    ]


async def run(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    unsubscribers = _subscribe_notifications()

    ctx = await build_context()
    try:
        return await COMMANDS[args.command](ctx, args)
    except StorageError as e:
        logger.error(f"Storage failure: {e}")
        print(f"Error: could not save your data ({e})")
        return 1
    finally:
        await ctx.close()
        for unsubscribe in unsubscribers:
            unsubscribe()


def main(argv: Optional[List[str]] = None):
    args = sys.argv[1:] if argv is None else argv
    if args and args[0] == "serve":
        serve_args = build_parser().parse_args(args)
        import uvicorn
        uvicorn.run("priceglass.main:app", host=serve_args.host, port=serve_args.port)
        return
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
