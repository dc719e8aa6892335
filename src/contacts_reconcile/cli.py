from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from typing import List, Optional

from .common import load_config
from .errors import ConfigError, ReconcileError, SourceUnavailableError
from .listener import ContactsChangeListener
from .logging_utils import configure_logging
from .pipeline import ContactsImporter

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_SOURCE_UNAVAILABLE = 1
EXIT_CONFIG_ERROR = 2
EXIT_STORE_ERROR = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Import address-book contacts into the people store without duplicates."
    )
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config.")
    parser.add_argument("--contacts-csv", type=str, default=None)
    parser.add_argument(
        "--contacts-csv-header",
        type=str,
        default=None,
        help="Skip preamble lines until a line starting with this text (the CSV header).",
    )
    parser.add_argument("--contacts-vcf", type=str, default=None)
    parser.add_argument("--people-csv", type=str, default=None)
    parser.add_argument("--interval", type=float, default=None, help="Seconds between polls.")
    parser.add_argument("--max-edit-distance", type=int, default=None)
    parser.add_argument("--conflict-policy", choices=["merge", "first"], default=None)
    parser.add_argument(
        "--validate-emails",
        dest="validate_emails",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Drop syntactically invalid emails before matching (default: off).",
    )
    parser.add_argument(
        "--watch", action="store_true", help="Keep polling the source and re-import on change."
    )
    parser.add_argument("--log-level", type=str, default=None, help="Override logging level")
    return parser


def _watch(importer: ContactsImporter, interval: float) -> None:
    listener = ContactsChangeListener(importer, interval_seconds=interval)
    listener.start_listening()
    try:
        while listener.is_listening():
            time.sleep(1.0)
    except KeyboardInterrupt:
        logger.info("Interrupted; stopping listener")
    finally:
        listener.stop_listening()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
    except ConfigError as exc:
        print(f"config error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    configure_logging(config, level_override=args.log_level)

    try:
        importer = ContactsImporter.from_config(config)
        result = importer.run_once()
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG_ERROR
    except SourceUnavailableError as exc:
        logger.error("Contact source unavailable: %s", exc)
        return EXIT_SOURCE_UNAVAILABLE
    except ReconcileError as exc:
        logger.error("People store failed: %s", exc)
        return EXIT_STORE_ERROR

    print(json.dumps(result.to_dict()))

    if args.watch:
        _watch(importer, config.listener.interval_seconds)
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
