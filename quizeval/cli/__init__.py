#!/usr/bin/env python3
"""
Quiz Evaluation CLI

Usage:
    python -m quizeval.cli <command> [options]

Commands:
    evaluate    Evaluate a quiz (grade attempts, rebuild statistics)
    results     Show the ranked results of an evaluated quiz
    db          Database operations (init)

Environment:
    DATABASE_URL    SQLAlchemy async connection string
    LOG_LEVEL       DEBUG|INFO|WARNING|ERROR
"""
import sys
import argparse
import logging
from typing import Optional

from quizeval import __version__
from quizeval.cli.db_commands import DbCommand
from quizeval.cli.quiz_commands import QuizCommand


def setup_logging(level: str = "INFO") -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="quizeval",
        description="Quiz Evaluation CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s db init
  %(prog)s evaluate --quiz-id 42
  %(prog)s results --quiz-id 42
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without executing"
    )

    parser.add_argument(
        "--database-url",
        default=None,
        help="Override DATABASE_URL"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # evaluate
    evaluate_parser = subparsers.add_parser("evaluate", help="Evaluate a quiz")
    evaluate_parser.add_argument("--quiz-id", "-q", type=int, required=True, help="Quiz ID")
    evaluate_parser.add_argument("--timeout", type=float, default=None, help="Timeout in seconds")

    # results
    results_parser = subparsers.add_parser("results", help="Show quiz results")
    results_parser.add_argument("--quiz-id", "-q", type=int, required=True, help="Quiz ID")

    # Database commands
    db_parser = subparsers.add_parser("db", help="Database operations")
    db_subparsers = db_parser.add_subparsers(dest="db_action")

    # db init
    db_subparsers.add_parser("init", help="Create missing tables")

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 1

    setup_logging(parsed.log_level)

    command_map = {
        "evaluate": QuizCommand,
        "results": QuizCommand,
        "db": DbCommand,
    }

    if parsed.command in command_map:
        handler = command_map[parsed.command](
            dry_run=parsed.dry_run,
            database_url=parsed.database_url
        )
        return handler.execute(parsed)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
