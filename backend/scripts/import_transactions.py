"""Import transactions from a JSON export into the local ledger."""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from invest_ledger.models import Transaction
from invest_tracker.config import get_settings
from invest_tracker.core.logging import setup_logging
from invest_tracker.services.factory import open_portfolio_service


async def _run(rows: list[dict]) -> None:
    engine, service = await open_portfolio_service(get_settings(), start=False)
    try:
        imported = await service.import_transactions(Transaction.from_dict(row) for row in rows)
    finally:
        await engine.dispose()
    print(f"Imported {imported} of {len(rows)} transactions; {len(service.queue)} changes pending sync")


def main() -> None:
    parser = argparse.ArgumentParser(description="Import a JSON list of transaction rows")
    parser.add_argument("path")
    args = parser.parse_args()
    path = Path(args.path)
    if not path.exists():
        raise SystemExit(f"File not found: {path}")
    payload = json.loads(path.read_text())
    if not isinstance(payload, list):
        raise SystemExit("Expected a JSON list of transaction rows")
    setup_logging()
    asyncio.run(_run(payload))


if __name__ == "__main__":
    main()
