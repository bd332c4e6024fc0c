#!/usr/bin/env python3
"""
crudkit CLI - Main entry point.

Usage:
    crudkit init                          # Write a default crudkit.yaml
    crudkit describe app.admin:BookViewSet
    crudkit describe app.models:Book      # Model without a viewset
"""

from __future__ import annotations

import argparse
import importlib
import sys
from pathlib import Path
from typing import Any, List, Optional

import yaml

from .. import __version__
from ..core.config import Settings, get_settings, load_settings
from ..core.errors import CrudkitError
from ..core.registry import EntityRegistry, register_entity
from ..viewsets.base import ModelViewSet


def import_target(spec: str) -> Any:
    """Resolve ``package.module:Name``."""
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Expected 'module:Name', got {spec!r}")

    module = importlib.import_module(module_name)
    target: Any = module
    for part in attr.split("."):
        target = getattr(target, part)
    return target


def cmd_init(args: argparse.Namespace) -> int:
    """Write a default settings file."""
    config_path = Path(args.path)

    if config_path.exists() and not args.force:
        print(f"Error: {config_path} already exists. Use --force to overwrite.")
        return 1

    Settings().save(config_path)
    print(f"Created {config_path}")
    return 0


def cmd_describe(args: argparse.Namespace) -> int:
    """Print the registered configuration of a viewset or model as YAML."""
    settings = load_settings(args.config) if args.config else get_settings()
    if settings is None:
        print(f"Error: {args.config} not found.")
        return 1

    try:
        target = import_target(args.target)
    except (ImportError, AttributeError, ValueError) as e:
        print(f"Error: cannot import {args.target}: {e}")
        return 1

    try:
        if isinstance(target, type) and issubclass(target, ModelViewSet):
            config = EntityRegistry(settings).register(target)
        else:
            config = register_entity(target, settings=settings)
    except CrudkitError as e:
        print(f"Configuration error: {e}")
        return 1

    print(yaml.dump(config.describe(), default_flow_style=False, sort_keys=False, allow_unicode=True), end="")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="crudkit",
        description="crudkit - field configuration and query engine for CRUD admin screens"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init
    init_parser = subparsers.add_parser("init", help="Write a default crudkit.yaml")
    init_parser.add_argument("--path", default="crudkit.yaml", help="Settings file to write")
    init_parser.add_argument("--force", "-f", action="store_true", help="Overwrite existing file")

    # describe
    describe_parser = subparsers.add_parser("describe", help="Dump an entity configuration")
    describe_parser.add_argument("target", help="module:ViewSet or module:Model")
    describe_parser.add_argument("--config", "-c", help="Settings file (default: $CRUDKIT_CONFIG or crudkit.yaml)")

    return parser


def app(args: Optional[List[str]] = None) -> int:
    """Main CLI application."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 0

    commands = {
        "init": cmd_init,
        "describe": cmd_describe,
    }

    handler = commands.get(parsed.command)
    if handler:
        return handler(parsed)

    parser.print_help()
    return 1


def main() -> None:
    """Entry point for CLI."""
    sys.exit(app())


if __name__ == "__main__":
    main()
