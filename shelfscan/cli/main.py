#!/usr/bin/env python3

import argparse
from collections.abc import Callable, Sequence


def _coerce_exit_code(code: object) -> int:
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    return 1


def _run_command(command: Callable[[argparse.Namespace], None], args: argparse.Namespace) -> int:
    """
    Normalize command handlers that call sys.exit() on failure.

    This keeps process termination centralized in this module's entrypoint.
    """
    try:
        command(args)
    except SystemExit as exc:
        return _coerce_exit_code(exc.code)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="shelfscan",
        description="Structured receipts from OCR text",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  parse <file|->             Parse OCR receipt text (use - for stdin)
                             --ocr-json reads an OCR payload, --review adds hints
  correct <original> <name>  Remember a corrected item name for a store
  hide <original>            Always hide an item for a store
  feedback <original> <verdict>
                             Rate an automatic decision (correct|incorrect)
  stats [--export]           Show learning statistics
  reset-learning --yes       Delete all learned data
  serve [--host] [--port]    Start the HTTP server

Notes:
  Learned data lives under $SHELFSCAN_HOME/learning (default ~/.shelfscan).
  AI extraction runs only when SHELFSCAN_AI_API_KEY is set.
""",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # parse command
    parse_parser = subparsers.add_parser("parse", help="Parse OCR receipt text")
    parse_parser.add_argument("file", help="Text file with OCR output, or - for stdin")
    parse_parser.add_argument("--store", default=None, help="Store name hint (overrides detection)")
    parse_parser.add_argument("--json", action="store_true", help="Print JSON instead of a summary")
    parse_parser.add_argument("--no-ai", action="store_true", help="Skip AI extraction even if configured")
    parse_parser.add_argument("--ocr-json", action="store_true", help="Input is an OCR JSON payload")
    parse_parser.add_argument("--review", action="store_true", help="Append non-food review hints")

    # learning commands
    correct_parser = subparsers.add_parser("correct", help="Remember a corrected item name")
    correct_parser.add_argument("original", help="Item text as printed on the receipt")
    correct_parser.add_argument("corrected", help="Name to show instead")
    correct_parser.add_argument("--store", required=True, help="Store the correction applies to")

    hide_parser = subparsers.add_parser("hide", help="Always hide an item")
    hide_parser.add_argument("original", help="Item text as printed on the receipt")
    hide_parser.add_argument("--store", required=True, help="Store the rule applies to")

    feedback_parser = subparsers.add_parser("feedback", help="Rate an automatic decision")
    feedback_parser.add_argument("original", help="Item text as printed on the receipt")
    feedback_parser.add_argument("verdict", choices=["correct", "incorrect"], help="Was the decision right?")
    feedback_parser.add_argument("--store", required=True, help="Store the item came from")

    stats_parser = subparsers.add_parser("stats", help="Show learning statistics")
    stats_parser.add_argument("--export", action="store_true", help="Print the full learning export")

    reset_parser = subparsers.add_parser("reset-learning", help="Delete all learned data")
    reset_parser.add_argument("--yes", action="store_true", help="Confirm deletion")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start the HTTP server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=8080, help="Port to bind to (default: 8080)")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == "parse":
        from shelfscan.cli.receipt import cmd_parse

        return _run_command(cmd_parse, args)
    elif args.command == "correct":
        from shelfscan.cli.receipt import cmd_correct

        return _run_command(cmd_correct, args)
    elif args.command == "hide":
        from shelfscan.cli.receipt import cmd_hide

        return _run_command(cmd_hide, args)
    elif args.command == "feedback":
        from shelfscan.cli.receipt import cmd_feedback

        return _run_command(cmd_feedback, args)
    elif args.command == "stats":
        from shelfscan.cli.receipt import cmd_stats

        return _run_command(cmd_stats, args)
    elif args.command == "reset-learning":
        from shelfscan.cli.receipt import cmd_reset_learning

        return _run_command(cmd_reset_learning, args)
    elif args.command == "serve":
        from shelfscan.cli.receipt import cmd_serve

        return _run_command(cmd_serve, args)

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
