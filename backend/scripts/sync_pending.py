"""Replay queued local changes against the remote store."""

from __future__ import annotations

import argparse
import asyncio

from invest_tracker.config import get_settings
from invest_tracker.core.logging import setup_logging
from invest_tracker.services.factory import open_portfolio_service


async def _run(pull: bool) -> int:
    settings = get_settings()
    if not settings.remote_store_url:
        print("REMOTE_STORE_URL is not set; nothing to sync against")
        return 1
    engine, service = await open_portfolio_service(settings, start=False)
    try:
        before = len(service.queue)
        if pull:
            await service.sync()
        else:
            await service.queue.drain(service.remote)
        status = await service.sync_status()
        print(f"Replayed {before - status.pending_count} of {before} pending changes")
        print(f"Last synced: {status.last_synced.isoformat() if status.last_synced else 'never'}")
    finally:
        await engine.dispose()
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Push pending ledger changes to the remote store")
    parser.add_argument("--pull", action="store_true", help="Also adopt the remote ledger after pushing")
    args = parser.parse_args()
    setup_logging()
    raise SystemExit(asyncio.run(_run(args.pull)))


if __name__ == "__main__":
    main()
