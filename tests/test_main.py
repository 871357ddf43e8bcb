"""Tests for the console entry point."""

import logging
import logging.handlers

import pytest

from courierkit.app.main import build_parser, configure_logging, run
from courierkit.shared.core.configuration import ClientConfig, LoggingConfig


def test_parser_accepts_delivery_options():
    args = build_parser().parse_args(["deliver", "o1", "--otp", "4321"])
    assert args.command == "deliver"
    assert args.order_id == "o1"
    assert args.otp == "4321"
    assert args.notes is None


def test_parser_rejects_unknown_availability():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["availability", "sleeping"])


@pytest.mark.asyncio
async def test_commands_require_a_session(capsys):
    config = ClientConfig.model_validate({"storage": {"backend": "memory"}})
    args = build_parser().parse_args(["orders"])

    assert await run(args, config) == 1
    assert "Not logged in" in capsys.readouterr().out


def test_configure_logging_adds_rotating_file(tmp_path):
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        configure_logging(LoggingConfig(level="debug", log_file=str(tmp_path / "logs" / "courier.log")))
        assert root.level == logging.DEBUG
        assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in root.handlers)
        assert (tmp_path / "logs").is_dir()
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
