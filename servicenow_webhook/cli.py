"""servicenow-webhook command line entry point."""

import os

import typer
import uvicorn

from servicenow_webhook.core.config import DEFAULT_CONFIG_FILE, load_config
from servicenow_webhook.core.errors import ConfigError

app = typer.Typer(help="Alertmanager webhook creating and updating ServiceNow incidents")


@app.command()
def serve(
    config_file: str = typer.Option(
        DEFAULT_CONFIG_FILE,
        "--config-file",
        "-c",
        help="ServiceNow configuration file",
    ),
    host: str = typer.Option("0.0.0.0", "--host", help="Address to listen on"),
    port: int = typer.Option(9877, "--port", "-p", help="Port to listen on"),
):
    """Run the webhook HTTP server."""
    # checked here so a broken file fails before uvicorn starts
    try:
        load_config(config_file)
    except ConfigError as e:
        typer.echo(f"Error loading config file: {e}", err=True)
        raise typer.Exit(code=1)

    os.environ["SERVICENOW_CONFIG_FILE"] = config_file
    uvicorn.run("servicenow_webhook.main:app", host=host, port=port)


@app.command()
def check_config(
    config_file: str = typer.Option(
        DEFAULT_CONFIG_FILE,
        "--config-file",
        "-c",
        help="ServiceNow configuration file",
    ),
):
    """Load and validate a configuration file."""
    try:
        config = load_config(config_file)
    except ConfigError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)

    typer.echo(f"instance: {config.service_now.instance_name}")
    typer.echo(f"group key field: {config.workflow.incident_group_key_field}")
    typer.echo(f"no update states: {', '.join(config.workflow.no_update_states) or '-'}")
    typer.echo(f"update fields: {', '.join(config.workflow.incident_update_fields) or '-'}")
    typer.echo(f"default incident fields: {', '.join(config.default_incident) or '-'}")


if __name__ == "__main__":
    app()
