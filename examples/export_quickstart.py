#!/usr/bin/env python3
"""Stream a simulated cursor-paginated listing through the export engine.

Run with --url to export from a real JSON listing endpoint instead.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import random

from quickport.export import ExportConfig, ExportOrchestrator, HTTPClient, HTTPPageSource


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Quickstart for paginated streaming exports")
    p.add_argument("--pages", type=int, default=6, help="Simulated pages")
    p.add_argument("--page-size", type=int, default=5, help="Items per simulated page")
    p.add_argument("--failure-rate", type=float, default=0.2, help="Simulated transient errors")
    p.add_argument("--url", help="Listing URL to export instead of the simulation")
    p.add_argument("--items-key", default="DashboardSummaryList")
    p.add_argument("-v", "--verbose", action="store_true")
    return p.parse_args()


def simulated_listing(pages: int, page_size: int, failure_rate: float):
    async def fetch_page(cursor: str | None) -> dict:
        await asyncio.sleep(random.uniform(0.01, 0.05))
        if random.random() < failure_rate:
            raise ConnectionResetError("simulated connection reset")
        index = 0 if cursor is None else int(cursor)
        items = [{"DashboardId": f"dash-{index}-{i}"} for i in range(page_size)]
        next_token = str(index + 1) if index + 1 < pages else None
        return {"items": items, "nextToken": next_token}

    return fetch_page


async def export_item(item: dict, index: int) -> None:
    await asyncio.sleep(random.uniform(0.0, 0.02))
    print(f"EXPORTED #{index:>3} {next(iter(item.values()))}")


async def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    config = ExportConfig.from_env()
    orchestrator = ExportOrchestrator(config)

    if args.url:
        async with HTTPClient() as client:
            source = HTTPPageSource(client, args.url, items_key=args.items_key, page_size=100)
            result = await orchestrator.stream(source, export_item, operation_name="HTTPExport")
    else:
        fetch_page = simulated_listing(args.pages, args.page_size, args.failure_rate)
        result = await orchestrator.stream(fetch_page, export_item, operation_name="SimExport")

    print(
        f"DONE pages={result.total_pages} items={result.total_items} "
        f"duration={result.duration:.3f}s"
    )


if __name__ == "__main__":
    asyncio.run(main())
