#!/usr/bin/env python3

from __future__ import annotations

import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from partner_relations.ui import cli

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def main(argv: Sequence[str] | None = None) -> None:
    """Console script entry point: load ``.env`` and run the CLI."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    cli.main(argv)


if __name__ == "__main__":
    main()
