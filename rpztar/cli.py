"""
Command Line Interface for rpztar.

Usage: rpztar ARCHIVE [ALLOW_LIST]
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from ._version import __version__
from .allowlist import load_allow_list
from .cli_helpers import exit_with_error, map_exception_to_exit_code
from .config import ExtractSettings, OwnershipPolicy
from .constants import ExitCodes
from .errors import RpzTarError
from .extract import extract_archive
from .logging_config import configure_logging, get_logger


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog='rpztar',
        description='Unpack the DATA part of an RPZ container, restoring permissions and ownership'
    )
    parser.add_argument('archive',
                        help='RPZ container to read (gzip compressed or not), "-" for standard input')
    parser.add_argument('allow_list', nargs='?',
                        help='File listing the paths to unpack, separated by NUL bytes')
    parser.add_argument('-C', '--directory', dest='destination', default=None,
                        help='Destination directory (default: $RPZTAR_DESTINATION or the current directory)')
    parser.add_argument('--permissive-ownership', action='store_true',
                        help='Log ownership restoration failures instead of aborting')
    parser.add_argument('--no-replace-directories', action='store_true',
                        help='Abort instead of removing a directory that is in the way of a file')
    parser.add_argument('--no-nested', action='store_true',
                        help='Do not follow a nested DATA.tar.gz container')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Log every unpacked entry')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def settings_from_args(parsed_args: argparse.Namespace) -> ExtractSettings:
    """Apply command line overrides on top of environment settings."""
    settings = ExtractSettings.from_env()
    if parsed_args.destination is not None:
        settings.destination = Path(parsed_args.destination)
    if parsed_args.permissive_ownership:
        settings.ownership = OwnershipPolicy.PERMISSIVE
    if parsed_args.no_replace_directories:
        settings.replace_directories = False
    if parsed_args.no_nested:
        settings.follow_nested = False
    return settings


def main(args: Optional[List[str]] = None) -> None:
    """
    Main entry point for the CLI.

    Args:
        args: Command line arguments (uses sys.argv if None)
    """
    parser = create_parser()
    if args is None:
        args = sys.argv[1:]
    parsed_args = parser.parse_args(args)

    configure_logging('DEBUG' if parsed_args.verbose else None)
    logger = get_logger(__name__)
    settings = settings_from_args(parsed_args)

    try:
        allow_list = load_allow_list(parsed_args.allow_list) if parsed_args.allow_list else None
        if allow_list is not None:
            logger.debug("Loaded %d allow-list entries", len(allow_list))
        extract_archive(parsed_args.archive, settings, allow_list)
    except RpzTarError as exc:
        exit_code = map_exception_to_exit_code(exc)
        exit_with_error(str(exc), exit_code if exit_code is not None else ExitCodes.UNEXPECTED_ERROR)
    except KeyboardInterrupt:
        exit_with_error("Interrupted", ExitCodes.INTERRUPTED)

    sys.exit(ExitCodes.OK)


if __name__ == '__main__':
    main()
