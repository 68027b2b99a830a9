"""
QDX Ticket Reader - Main Application
====================================

Parses a QDX transaction log and writes the completed tickets to CSV.

This script:
1. Loads configuration (optional JSON file + command-line overrides)
2. Scans the log slot by slot, reassembling tickets per POS session
3. Saves accepted tickets to CSV (one row per ticket)
4. Optionally saves the line item report and logs a per-store summary
5. Handles Ctrl+C by stopping the scan after the current slot

Usage:
    qdx-reader path/to/log.qdx
    qdx-reader path/to/log.qdx --all-tickets --summary
    qdx-reader path/to/log.qdx --debug --log-file debug.log
"""

import sys
import argparse
import logging
import signal
from pathlib import Path
from typing import List, Optional, Tuple

from qdx_reader.config import ScannerConfig, load_config
from qdx_reader.fields import TailData
from qdx_reader.models import Ticket
from qdx_reader.report import line_items_frame, store_summary
from qdx_reader.saver import TicketSaver, default_output_path
from qdx_reader.scanner import StreamScanner

logger = logging.getLogger(__name__)


def setup_logging(log_file: str = 'qdx_reader.log', verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


def trace_slot(slot: bytes, tail: TailData):
    """Raw record hook: log every slot with its session and opcode."""
    logger.debug(f"slot pos={tail.pos_number} ticket={tail.ticket_number} "
                 f"seq={tail.seq_no} opcode={slot[0:2].hex()} raw={slot.hex()}")


def log_retained_slots(saved: List[Tuple[int, bytes]]):
    """Dump the slots retained by a debug scan."""
    logger.info(f"Retained {len(saved):,} raw slots")
    for index, slot in saved:
        logger.debug(f"slot[{index}] {slot.hex()}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='qdx-reader',
        description='Reassemble POS tickets from a QDX transaction log')
    parser.add_argument('input', help='QDX log file')
    parser.add_argument('--config', help='JSON configuration file')
    parser.add_argument('--output', help='Ticket CSV path (default: input with .csv extension)')
    parser.add_argument('--line-items', help='Also write the line item report to this path')
    parser.add_argument('--all-tickets', action='store_true',
                        help='Keep tickets without a loyalty card')
    parser.add_argument('--coupons', action='store_true', help='Decode coupon records')
    parser.add_argument('--trace', action='store_true', help='Log every raw slot (debug level)')
    parser.add_argument('--debug', action='store_true',
                        help='Retain raw slots and dump them after the scan (debug level)')
    parser.add_argument('--summary', action='store_true', help='Log a per-store summary')
    parser.add_argument('--log-file', default='qdx_reader.log', help='Log file path')
    parser.add_argument('--verbose', action='store_true', help='Debug logging')
    return parser


def build_config(args: argparse.Namespace) -> ScannerConfig:
    config = load_config(args.config) if args.config else ScannerConfig()
    if args.all_tickets:
        config.loyalty_card_required = False
    if args.coupons:
        config.enable_coupons = True
    if args.trace:
        config.raw_record_hook = trace_slot
    if args.debug:
        config.debug = True
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main application entry point.

    Returns:
        Process exit code (0 on success, 1 on error)
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.log_file, args.verbose or args.trace or args.debug)

    logger.info("=" * 70)
    logger.info(f"QDX Ticket Reader - {args.input}")
    logger.info("=" * 70)

    try:
        config = build_config(args)

        tickets: List[Ticket] = []
        scanner = StreamScanner(args.input, config, on_ticket=tickets.append)

        def signal_handler(signum, frame):
            logger.info("⚠ Shutdown signal received (Ctrl+C)")
            scanner.stop()

        previous_handler = signal.signal(signal.SIGINT, signal_handler)
        try:
            saved = scanner.scan()
        finally:
            signal.signal(signal.SIGINT, previous_handler)
        scanner.log_statistics()
        if config.debug:
            log_retained_slots(saved or [])

        output = Path(args.output) if args.output else default_output_path(args.input)
        saver = TicketSaver(config.output_dir, config.delimiter)
        if not saver.save_tickets_csv(tickets, output):
            return 1
        if args.line_items and not saver.save_line_items_csv(tickets, args.line_items):
            return 1

        if args.summary:
            summary = store_summary(line_items_frame(tickets))
            logger.info("Per-store summary:\n" + (summary.to_string() if not summary.empty else "(no tickets)"))

        logger.info(f"✓ File successfully parsed as {output}")
        return 0

    except FileNotFoundError as e:
        logger.error(f"✗ Could not parse file: {e}")
        return 1

    except Exception as e:
        logger.error(f"✗ Could not parse file. Error: {e}")
        logger.exception("Full error traceback:")
        return 1


if __name__ == '__main__':
    sys.exit(main())
