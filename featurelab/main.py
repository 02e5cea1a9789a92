"""
FeatureLab - Experiment Registry
Main Entry Point

Serves the admin web surface or inspects and toggles experiments from the
command line.
"""

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load .env BEFORE any other imports that read os.environ or settings
load_dotenv(dotenv_path=Path(".") / ".env", override=True)

import structlog
import uvicorn
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from featurelab.bootstrap import Runtime, build_runtime
from featurelab.experiments.manager import FeatureState
from featurelab.utils.config import Settings, get_settings
from featurelab.utils.logging import setup_logging

logger = structlog.get_logger()

console = Console()


def _load_settings(config_path: str | None) -> Settings:
    if config_path:
        return Settings.from_yaml(config_path)
    return get_settings()


def cmd_serve(runtime: Runtime, args: argparse.Namespace) -> int:
    from featurelab.web.api import create_app

    settings = runtime.settings
    host = args.host or settings.web.host
    port = args.port or settings.web.port

    app = create_app(runtime)
    logger.info("Starting admin server", host=host, port=port, admin=settings.web.admin_enabled)
    uvicorn.run(app, host=host, port=port, log_level=settings.logging.level.lower())
    return 0


def cmd_list(runtime: Runtime, args: argparse.Namespace) -> int:
    table = Table(title="Experiments")
    table.add_column("Name", style="bright_cyan")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Default")
    table.add_column("State")
    table.add_column("Active")

    for feature in runtime.manager.get_features().values():
        active = runtime.manager.is_feature_active(feature.name)
        table.add_row(
            escape(feature.name),
            escape(feature.title),
            feature.status.label,
            feature.default.label,
            feature.state.label,
            "[bright_green]yes[/]" if active else "[dim]no[/]",
        )

    console.print(table)
    return 0


def cmd_set(runtime: Runtime, args: argparse.Namespace) -> int:
    try:
        state = FeatureState.coerce(args.state)
    except ValueError as e:
        console.print(str(e), style="bright_red", markup=False)
        return 1

    feature = runtime.manager.save_feature_state(args.name, state)
    if feature is None:
        console.print(f"Unknown experiment: {args.name}", style="bright_red", markup=False)
        return 1

    active = runtime.manager.is_feature_active(feature.name)
    console.print(
        f"{feature.name}: state={feature.state.label} "
        f"({'active' if active else 'inactive'})"
    )
    return 0


COMMANDS = {
    "serve": cmd_serve,
    "list": cmd_list,
    "set": cmd_set,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="featurelab",
        description="FeatureLab - experiment registry and admin toggles",
    )
    parser.add_argument(
        "--config",
        default=None,
        metavar="PATH",
        help="Path to settings YAML (default: config/settings.yaml or $FEATURELAB_CONFIG)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the admin web server")
    serve.add_argument("--host", default=None, help="Bind address (default: web.host)")
    serve.add_argument("--port", type=int, default=None, help="Port (default: web.port)")

    sub.add_parser("list", help="List registered experiments")

    set_cmd = sub.add_parser("set", help="Persist an experiment state override")
    set_cmd.add_argument("name", help="Experiment name")
    set_cmd.add_argument("state", help="default, active or inactive (or 0, 1, 2)")

    return parser


def run(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        settings = _load_settings(args.config)
    except ValueError as e:
        console.print(str(e), style="bright_red", markup=False)
        return 2

    if args.command == "serve":
        settings.ensure_directories()
        setup_logging(settings=settings)

    runtime = build_runtime(settings)
    return COMMANDS[args.command](runtime, args)


if __name__ == "__main__":
    sys.exit(run())
