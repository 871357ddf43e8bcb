"""courierkit - console entry point."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import logging.handlers
import os
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from courierkit.app.state import Store, sorted_for_display
from courierkit.shared.core.configuration import ClientConfig, ConfigManager, LoggingConfig

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def configure_logging(config: LoggingConfig) -> None:
    """Console gets WARNING and up; the optional file gets the configured level."""
    level = LOG_LEVELS.get(config.level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    ))
    root_logger.addHandler(console_handler)

    if config.log_file:
        log_path = Path(config.log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        root_logger.addHandler(file_handler)

    # Suppress verbose third-party library logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _print_orders(store: Store) -> None:
    orders = store.orders
    print(f"Pending ({len(orders.pending_orders)}):")
    for order in orders.pending_orders:
        print(f"  {order.id}  #{order.order_number or '-'}  {order.status_label}")
    print(f"Assigned ({len(orders.assigned_orders)}):")
    for order in sorted_for_display(orders.assigned_orders):
        print(f"  {order.id}  #{order.order_number or '-'}  {order.status_label}")
    if orders.stats:
        s = orders.stats
        print(f"Stats: {s.completed_deliveries}/{s.total_deliveries} delivered, rating {s.rating}")


async def run(args: argparse.Namespace, config: ClientConfig) -> int:
    async with Store(config) as store:
        session = store.session

        if args.command == "login":
            password = os.getenv("COURIER_PASSWORD") or getpass.getpass("Password: ")
            if not await session.login(args.email, password):
                print(f"Login failed: {session.error}")
                return 1
            print(f"Logged in as {session.user.full_name or session.user.email}")
            return 0

        if not session.is_authenticated:
            print("Not logged in. Run: courierkit login <email>")
            return 1

        if args.command == "logout":
            await session.logout()
            print("Logged out")
        elif args.command == "status":
            print(f"{session.user.full_name} <{session.user.email}> - {session.user.availability.value}")
        elif args.command == "availability":
            if not await session.update_availability(args.value):
                print(f"Update failed: {session.error_for('availability')}")
                return 1
            print(f"Availability: {session.user.availability.value}")
        elif args.command == "orders":
            await store.orders.refresh_all()
            _print_orders(store)
        elif args.command == "accept":
            if not await store.orders.accept_order(args.order_id):
                print(f"Accept failed: {store.orders.error_for('accept')}")
                return 1
            print(f"Accepted {args.order_id}")
        elif args.command == "deliver":
            if not await store.orders.mark_delivered(args.order_id, args.notes, args.otp):
                print(f"Delivery failed: {store.orders.error_for('delivered')}")
                return 1
            print(f"Delivered {args.order_id}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="courierkit", description="Courier delivery client")
    parser.add_argument("--config-dir", type=Path, default=None, help="Directory holding user.yaml")
    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="Log in and store the token")
    login.add_argument("email")
    sub.add_parser("logout", help="Log out and forget the token")
    sub.add_parser("status", help="Show the logged-in courier")
    availability = sub.add_parser("availability", help="Set availability")
    availability.add_argument("value", choices=["available", "busy", "offline"])
    sub.add_parser("orders", help="Refresh and list orders")
    accept = sub.add_parser("accept", help="Accept a pending order")
    accept.add_argument("order_id")
    deliver = sub.add_parser("deliver", help="Mark an order delivered")
    deliver.add_argument("order_id")
    deliver.add_argument("--notes", default=None)
    deliver.add_argument("--otp", default=None)
    return parser


def cli(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    config = ConfigManager(args.config_dir).get_config()
    configure_logging(config.logging)
    return asyncio.run(run(args, config))


if __name__ == "__main__":
    raise SystemExit(cli())
