#!/usr/bin/env python3
"""Debug script to inspect a live price refresh.

Fetches prices for the given symbols from every provider and prints the
merged table plus each provider's status. Nothing is written to the
database.

Usage:
    uv run python -m scripts.debug_prices AAPL msft btc eth
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from integrations.exceptions import AllProvidersFailed
from logging_config import setup_logging
from services.market_data_service import MarketDataService


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("symbols", nargs="+", help="Ticker symbols (any case)")
    args = parser.parse_args(argv)

    setup_logging()
    service = MarketDataService()

    try:
        result = service.refresh_prices(args.symbols)
    except AllProvidersFailed as exc:
        print(f"*** {exc}")
        for name, error in exc.errors.items():
            print(f"  {name}: {error!r}")
        return 1
    finally:
        service.close()

    print("=== Providers ===")
    for status in result.statuses:
        state = "ok" if status.ok else f"FAILED ({status.error})"
        print(
            f"  {status.provider_name:<10} {status.asset_class.value:<7} "
            f"{status.priced}/{len(status.requested)} priced  {state}"
        )

    print("\n=== Prices ===")
    for symbol, price in sorted(result.prices.items()):
        print(f"  {symbol:<8} {price}")

    if result.missing_symbols:
        print(f"\nNo price: {', '.join(sorted(result.missing_symbols))}")
    if result.unrecognized:
        print(f"Ignored:  {', '.join(sorted(result.unrecognized))}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
