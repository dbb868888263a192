"""Storage config doctor: validate a storage config and try identifiers.

Examples:
    # Validate a config file
    storage-config-doctor storage.yaml

    # Also resolve some identifiers against it
    storage-config-doctor storage.yaml --resolve uploads:avatars/42.png invoices:2024/q1.pdf

    # Machine-readable output
    storage-config-doctor storage.yaml --json

Exit codes:
    0 - Config is valid and every identifier resolved
    1 - Config is invalid or an identifier failed to resolve
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from storage_engine.config.loader import load_registry
from storage_engine.config.registry import BackendRegistry
from storage_engine.errors import ConfigurationError
from storage_engine.logging import setup_logging
from storage_engine.resolver import UriResolver

logger = logging.getLogger(__name__)


def describe_registry(registry: BackendRegistry) -> List[Dict[str, Any]]:
    """Summarize each backend; option values are left out as they may hold secrets."""
    return [
        {
            "name": definition.name,
            "kind": definition.kind.value,
            "server": definition.server,
            "prefix": definition.default_prefix,
            "options": sorted(definition.options),
        }
        for definition in registry
    ]


def _print_text(backends: List[Dict[str, Any]], results: List[Dict[str, Any]]) -> None:
    print(f"Loaded {len(backends)} backends")
    for backend in backends:
        line = f"  {backend['name']:<20} {backend['kind']:<8}"
        if backend["server"] != backend["name"]:
            line += f" server={backend['server']}"
        if backend["prefix"]:
            line += f" prefix={backend['prefix']}"
        print(line)

    if results:
        print()
        for result in results:
            if result["success"]:
                print(f"PASS: {result['identifier']} -> {result['backend']}:{result['path']}")
            else:
                error = result["error"]
                print(f"FAIL: {result['identifier']}")
                print(f"  {error['error_type']}: {error['message']}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="storage-config-doctor",
        description="Validate a storage configuration file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("config", type=Path, help="Path to the YAML config file")
    parser.add_argument(
        "--resolve",
        nargs="+",
        default=[],
        metavar="IDENTIFIER",
        help="Identifiers to resolve against the config",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file first",
    )
    parser.add_argument(
        "--strict-env",
        action="store_true",
        help="Fail on references to unset environment variables",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--json", action="store_true", help="Print a JSON report")

    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose, json_format=args.json)

    try:
        registry = load_registry(
            args.config, env_file=args.env_file, strict_env=args.strict_env
        )
    except ConfigurationError as exc:
        if args.json:
            print(json.dumps({"valid": False, "error": exc.to_dict()}, indent=2))
        else:
            print(f"ERROR: {exc}")
        return 1

    resolver = UriResolver(registry)
    results = [resolver.try_resolve(identifier).to_dict() for identifier in args.resolve]
    backends = describe_registry(registry)

    if args.json:
        print(
            json.dumps(
                {"valid": True, "backends": backends, "resolved": results},
                indent=2,
                default=str,
            )
        )
    else:
        _print_text(backends, results)

    failed = [result for result in results if not result["success"]]
    if failed:
        logger.debug("%d of %d identifiers failed to resolve", len(failed), len(results))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
