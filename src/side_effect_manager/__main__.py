"""CLI entrypoint for side-effect-manager."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from importlib import metadata
import json
from pathlib import Path

from . import config as config_module
from .config import load_config
from .logging_utils import configure_logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="side-effects",
        description="Inspect side-effect-manager configuration",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a config.toml (defaults to the user config location)",
    )
    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Print the effective configuration as JSON and exit",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Handle CLI flags against the effective configuration."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.version:
        try:
            version = metadata.version("side-effect-manager")
        except metadata.PackageNotFoundError:
            version = "0.0.0"
        print(f"side-effect-manager {version}")
        return

    config = load_config(args.config)
    if args.show_config:
        print(json.dumps(config, indent=2, sort_keys=True))
        return

    configure_logging(config["logging"])
    print(args.config or config_module.CONFIG_PATH)


if __name__ == "__main__":
    main()
