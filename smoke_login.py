#!/usr/bin/env python3
"""Simple smoke script: log in against a live backend and list orders."""

import asyncio
import logging
import os

from dotenv import load_dotenv

from courierkit.app.state import Store, sorted_for_display
from courierkit.shared.core.configuration import load_config

# Setup logging to see all debug messages
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


async def main():
    """Log in with COURIER_EMAIL / COURIER_PASSWORD and dump the order lists"""
    load_dotenv()
    email = os.getenv("COURIER_EMAIL", "")
    password = os.getenv("COURIER_PASSWORD", "")

    config = load_config()
    logger.info(f"API base: {config.api.base_url}")
    logger.info(f"Storage backend: {config.storage.backend}")

    async with Store(config) as store:
        logger.info(f"Restored session: {store.session.is_authenticated}")

        if not store.session.is_authenticated:
            if not await store.session.login(email, password):
                logger.error(f"Login failed: {store.session.error}")
                return

        logger.info(f"Logged in as {store.session.user.full_name}")
        await store.orders.refresh_all()

        for order in sorted_for_display(store.orders.assigned_orders):
            logger.info(f"Assigned {order.order_number}: {order.status_label}")
        logger.info(f"Pending orders: {len(store.orders.pending_orders)}")
        logger.info(f"Stats: {store.orders.stats}")
        logger.info(f"Errors: {store.orders.errors}")

if __name__ == "__main__":
    asyncio.run(main())
