"""Main entry point for the station board.

Logging goes to stderr so it never mixes with the board on stdout.
Set STATIONS_LOG_LEVEL (e.g. DEBUG) for more detail.
"""
import logging
import os

from cli import cli


def setup_logging() -> None:
    level_name = os.environ.get('STATIONS_LOG_LEVEL', 'WARNING').upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


def main():
    setup_logging()
    cli(prog_name='stations')

if __name__ == "__main__":
    main()
