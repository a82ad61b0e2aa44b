"""Argument parsing functionality for deptree."""

import argparse


def _add_common_arguments(parser):
    """Options shared by every subcommand."""
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--registry",
                        dest="REGISTRY_URL",
                        help="Registry base URL (default: https://registry.npmjs.org/)",
                        action="store",
                        type=str)
    parser.add_argument("--max-workers",
                        dest="MAX_WORKERS",
                        help="Maximum number of concurrent registry requests",
                        action="store",
                        type=int)
    parser.add_argument("--timeout",
                        dest="TIMEOUT",
                        help="Per-request HTTP timeout in seconds",
                        action="store",
                        type=float)
    parser.add_argument("--retries",
                        dest="HTTP_RETRIES",
                        help="HTTP attempts per registry request on transport failure",
                        action="store",
                        type=int)


def build_parser():
    """Build the top-level parser with its subcommands."""
    parser = argparse.ArgumentParser(
        prog="deptree",
        description="deptree - Resolve a package's full dependency tree from an npm registry",
        add_help=True,
    )
    subparsers = parser.add_subparsers(dest="COMMAND", metavar="COMMAND")
    subparsers.required = True

    resolve = subparsers.add_parser("resolve", help="Resolve a dependency tree and print it as JSON")
    _add_common_arguments(resolve)
    resolve.add_argument("PACKAGE",
                         help="Package name, e.g. express or @types/node",
                         type=str)
    resolve.add_argument("CONSTRAINT",
                         help="Version range constraint (default: latest)",
                         nargs="?",
                         default="latest",
                         type=str)
    resolve.add_argument("-o", "--output",
                         dest="OUTPUT",
                         help="Path to output JSON file",
                         action="store",
                         type=str)
    resolve.add_argument("--error-on-unresolved",
                         dest="ERROR_ON_UNRESOLVED",
                         help="Exit with a non-zero status code if any node failed to resolve.",
                         action="store_true")

    serve = subparsers.add_parser("serve", help="Run the HTTP service")
    _add_common_arguments(serve)
    serve.add_argument("--host",
                       dest="HOST",
                       help="Bind address (default: 127.0.0.1)",
                       action="store",
                       type=str)
    serve.add_argument("--port",
                       dest="PORT",
                       help="Listen port (default: 8080)",
                       action="store",
                       type=int)
    serve.add_argument("--allow-external",
                       dest="ALLOW_EXTERNAL",
                       help="Permit binding to a non-loopback address",
                       action="store_true")
    serve.add_argument("--cache-max-entries",
                       dest="CACHE_MAX_ENTRIES",
                       help="Resolved trees kept in memory before eviction",
                       action="store",
                       type=int)
    serve.add_argument("--cache-ttl",
                       dest="CACHE_TTL",
                       help="Seconds a cached tree stays valid (0 = until evicted)",
                       action="store",
                       type=int)

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
