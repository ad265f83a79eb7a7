# ==============================================================================
# Journey Analytics CLI
# ==============================================================================
"""
Command-line interface for journey analytics.

Usage:
    journeys --help
    journeys journeys 42 --steps 4
    journeys transitions 42 /pricing /signup --page 2
    journeys step-details 42 event:button_click:signup
    journeys db init
    journeys db reset -y
    journeys config show
"""

import logging
import os

import typer

from journeys.utils.config import get_settings

# ==============================================================================
# App Configuration
# ==============================================================================
# Set consistent terminal width for help output formatting
if "COLUMNS" not in os.environ:
    os.environ["COLUMNS"] = "115"

app = typer.Typer(
    name="journeys",
    help="Journey and transition analytics over clickstream events",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.callback()
def configure_logging() -> None:
    """Journey and transition analytics over clickstream events."""
    settings = get_settings()
    level = logging.DEBUG if settings.debug else settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# Register analytics commands from cli.analytics module
from journeys.cli.analytics import journeys_show, step_details_show, transitions_show

app.command("journeys")(journeys_show)
app.command("transitions")(transitions_show)
app.command("step-details")(step_details_show)

db_app = typer.Typer(
    help="Database schema operations",
    no_args_is_help=True,
)
app.add_typer(db_app, name="db")

# Register db commands from cli.db module
from journeys.cli.db import db_init, db_reset

db_app.command("init")(db_init)
db_app.command("reset")(db_reset)

config_app = typer.Typer(
    help="Configuration management",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")

# Register config commands from cli.config module
from journeys.cli.config import config_show

config_app.command("show")(config_show)


# ==============================================================================
# Entry Point
# ==============================================================================


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
