"""Argument parsing functionality for webpin."""

import argparse

from constants import Constants


def _add_common_arguments(parser):
    """Options shared by every subcommand."""
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help=f"Path to a YAML/JSON config file (default: {Constants.CONFIG_NAME} if present)",
                        action="store",
                        type=str)
    parser.add_argument("--origin",
                        dest="ORIGIN",
                        help=f"CDN origin (default: {Constants.CDN_ORIGIN})",
                        action="store",
                        type=str)
    parser.add_argument("--cache-dir",
                        dest="CACHE_DIR",
                        help=f"Persistent cache directory (default: {Constants.CACHE_DIR})",
                        action="store",
                        type=str)
    parser.add_argument("--timeout",
                        dest="TIMEOUT",
                        help=f"HTTP request timeout in seconds, 0 disables (default: {Constants.REQUEST_TIMEOUT})",
                        action="store",
                        type=float)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="webpin",
        description=(
            "webpin - resolve web dependencies to pinned CDN URLs"
        ),
        add_help=True,
    )
    subparsers = parser.add_subparsers(dest="COMMAND", required=True)

    lock_parser = subparsers.add_parser(
        "lock",
        help="Resolve webDependencies and write the lockfile (import map)",
    )
    _add_common_arguments(lock_parser)
    lock_parser.add_argument("-o", "--lockfile",
                             dest="LOCKFILE",
                             help=f"Lockfile path (default: {Constants.LOCKFILE_NAME})",
                             action="store",
                             type=str)
    lock_parser.add_argument("-j", "--concurrency",
                             dest="CONCURRENCY",
                             help=f"Maximum concurrent resolutions (default: {Constants.RESOLVE_CONCURRENCY})",
                             action="store",
                             type=int)

    lookup_parser = subparsers.add_parser(
        "lookup",
        help="Look up a package import on the CDN (cached with TTL)",
    )
    _add_common_arguments(lookup_parser)
    lookup_parser.add_argument("SPECIFIER",
                               help="Package import, e.g. react or @scope/pkg/sub/path",
                               type=str)
    lookup_parser.add_argument("-s", "--semver",
                               dest="SEMVER",
                               help="Semver range to request",
                               action="store",
                               type=str)

    clear_parser = subparsers.add_parser(
        "clear-cache",
        help="Remove every entry from the persistent cache",
    )
    _add_common_arguments(clear_parser)

    return parser.parse_args(argv)
