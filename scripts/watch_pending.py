#!/usr/bin/env python
"""Log in as a resident and print alerts when pending visitors or parcels go up.

Usage:
    python scripts/watch_pending.py --email resident1@example.com --password changeme
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging

from backend.client.api import ApiClientError, VpmsClient
from backend.client.polling import watch_parcels, watch_visitors
from backend.config import settings
from backend.core.logging import configure_logging

logger = logging.getLogger("watch_pending")


async def run(base_url: str, email: str, password: str, interval: float) -> int:
    async with VpmsClient(base_url) as client:
        try:
            user = await client.login(email, password)
        except ApiClientError as exc:
            logger.error("Login failed: %s", exc)
            return 1

        watchers = [
            watcher
            for watcher in (
                watch_visitors(client, user, interval=interval),
                watch_parcels(client, user, interval=interval),
            )
            if watcher is not None
        ]
        if not watchers:
            logger.error("Only residents receive pending notifications (role: %s).", user.get("role"))
            return 1

        for watcher in watchers:
            watcher.start()
        logger.info("Watching pending items for %s every %ss. Press Ctrl+C to stop.", user.get("email"), interval)
        try:
            await asyncio.Event().wait()
        finally:
            for watcher in watchers:
                await watcher.stop()
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Poll VPMS for new pending visitors and parcels.")
    parser.add_argument("--base-url", default=settings.api_base_url)
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", default=None, help="Prompted for when omitted")
    parser.add_argument("--interval", type=float, default=settings.poll_interval_seconds)
    args = parser.parse_args()

    configure_logging(settings.log_level.upper(), json=settings.log_json)  # type: ignore[arg-type]
    password = args.password or getpass.getpass("Password: ")
    try:
        raise SystemExit(asyncio.run(run(args.base_url, args.email, password, args.interval)))
    except KeyboardInterrupt:
        print("Stopped.")


if __name__ == "__main__":
    main()
