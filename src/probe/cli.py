"""check-influxdb-q command line entry point."""

import asyncio
from typing import Optional

import typer
from loguru import logger
from pydantic import ValidationError

from src.config import AppConfig, CheckConfig, InfluxDBConfig, SensuConfig
from src.probe.application import create_query_check, load_client_directory
from src.probe.domain.exceptions import ConfigurationError, DirectoryError
from src.probe.domain.models import CHECK_NAME, RunMode, RunOutcome, Severity
from src.probe.infrastructure import (
    configure_logging,
    discover_settings_files,
    init_container,
    load_api_settings,
    read_api_settings,
)

app = typer.Typer(add_completion=False, help="Run an InfluxDB query and send one Sensu event per result record.")


def _given(**options) -> dict:
    return {key: value for key, value in options.items() if value is not None}


def build_config(
    influxdb: dict,
    sensu: dict,
    check: dict,
    log_level: str | None = None,
) -> AppConfig:
    """
    Merge command line options over environment settings.

    Raises:
        ConfigurationError: If the merged settings do not validate
    """
    try:
        sensu_config = SensuConfig(**sensu)
        api = None
        if not sensu_config.api_url:
            if sensu_config.settings_file:
                api = read_api_settings(sensu_config.settings_file)
            else:
                # Same lookup a Sensu plugin does: SENSU_CONFIG_FILES, else config.json plus conf.d
                api = load_api_settings(
                    discover_settings_files(
                        sensu_config.config_files, sensu_config.config_file, sensu_config.config_dir
                    )
                )
        if api:
            sensu_config = sensu_config.model_copy(
                update={
                    "api_url": api["url"],
                    "api_user": sensu_config.api_user or api["user"],
                    "api_password": sensu_config.api_password or api["password"],
                }
            )

        config = AppConfig(
            influxdb=InfluxDBConfig(**influxdb),
            sensu=sensu_config,
            check=CheckConfig(**check),
            **_given(log_level=log_level),
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    return config


async def run_check(config: AppConfig) -> RunOutcome:
    """Wire collaborators, load the client list, and run one pass."""
    container = init_container(config.container_config())

    check = create_query_check(config.check, container.backend(), container.event_sink())

    lister = container.client_lister() if config.sensu.api_url else None
    directory = await load_client_directory(lister, required=config.check.require_clients)

    return await check.run(directory)


@app.command()
def main(
    query: Optional[str] = typer.Option(
        None,
        "--query",
        "-q",
        help="Query to execute [e.g. SELECT DERIVATIVE(LAST(value), 1m) AS value FROM interface_rx "
        "WHERE type = 'if_errors' AND time > now() - 5m group by time(1m), instance, type fill(none)]",
    ),
    json_path: Optional[str] = typer.Option(
        None, "--json-path", "-j", help="JSON path for value matching (e.g. $.values[0].value)"
    ),
    check_name: Optional[str] = typer.Option(
        None, "--check-name", help="Check name (default: %{name}-%{tags.instance}-%{tags.type})"
    ),
    msg: Optional[str] = typer.Option(
        None, "--msg", "-m", help="Message for OK/WARNING/CRITICAL, supports interpolation (e.g. %{tags.instance})"
    ),
    database: Optional[str] = typer.Option(None, "--database", help="InfluxDB database (default: collectd)"),
    host: Optional[str] = typer.Option(None, "--host", help="InfluxDB host (default: localhost)"),
    port: Optional[int] = typer.Option(None, "--port", help="InfluxDB port (default: 8086)"),
    use_ssl: Optional[bool] = typer.Option(None, "--use-ssl/--no-use-ssl", help="InfluxDB SSL (default: false)"),
    username: Optional[str] = typer.Option(None, "--username", help="InfluxDB user"),
    password: Optional[str] = typer.Option(None, "--password", help="InfluxDB password"),
    timeout: Optional[float] = typer.Option(None, "--timeout", "-t", help="Query timeout in seconds (default: 30)"),
    host_field: Optional[str] = typer.Option(
        None, "--host-field", help="InfluxDB measurement host field (default: host)"
    ),
    mode: Optional[RunMode] = typer.Option(
        None, "--mode", help="per-host: one query per Sensu client; single-query: one query for all"
    ),
    filter_clients: Optional[bool] = typer.Option(
        None, "--filter-clients/--no-filter-clients", help="Single-query mode: skip records from unknown clients"
    ),
    require_clients: Optional[bool] = typer.Option(
        None, "--require-clients/--no-require-clients", help="Fail when the Sensu client list is unavailable"
    ),
    warn: Optional[str] = typer.Option(None, "--warn", "-w", help="Warning expression (e.g. value >= 5)"),
    crit: Optional[str] = typer.Option(None, "--crit", "-c", help="Critical expression (e.g. value >= 10)"),
    handler: Optional[list[str]] = typer.Option(None, "--handler", help="Sensu handler (repeatable)"),
    dryrun: Optional[bool] = typer.Option(
        None, "--dryrun/--no-dryrun", help="Do not send events to sensu client socket"
    ),
    sensu_api_url: Optional[str] = typer.Option(None, "--sensu-api-url", help="Sensu API URL"),
    sensu_api_user: Optional[str] = typer.Option(None, "--sensu-api-user", help="Sensu API user"),
    sensu_api_password: Optional[str] = typer.Option(None, "--sensu-api-password", help="Sensu API password"),
    sensu_settings: Optional[str] = typer.Option(
        None, "--sensu-settings", help="Sensu JSON settings file with an api section (e.g. /etc/sensu/conf.d/api.json)"
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Log level for stderr (default: WARNING)"),
):
    """Run the query once and report the run's own status through the exit code."""
    configure_logging(log_level or "WARNING")

    try:
        config = build_config(
            influxdb=_given(
                host=host, port=port, database=database, username=username, password=password, use_ssl=use_ssl
            ),
            sensu=_given(
                api_url=sensu_api_url,
                api_user=sensu_api_user,
                api_password=sensu_api_password,
                settings_file=sensu_settings,
            ),
            check=_given(
                query=query,
                json_path=json_path,
                check_name=check_name,
                msg=msg,
                host_field=host_field,
                mode=mode,
                filter_clients=filter_clients,
                require_clients=require_clients,
                warn=warn,
                crit=crit,
                handlers=handler or None,
                timeout=timeout,
                dryrun=dryrun,
            ),
            log_level=log_level,
        )
        if log_level is None:
            configure_logging(config.log_level)

        outcome = asyncio.run(run_check(config))
    except (ConfigurationError, DirectoryError) as e:
        logger.error(e.message)
        typer.echo(f"{CHECK_NAME} {Severity.UNKNOWN.name}: {e.message}")
        raise typer.Exit(code=int(Severity.UNKNOWN))
    except Exception as e:
        logger.exception("Check failed to run")
        typer.echo(f"{CHECK_NAME} {Severity.UNKNOWN.name}: Check failed to run: {e}")
        raise typer.Exit(code=int(Severity.UNKNOWN))

    typer.echo(outcome.output)
    raise typer.Exit(code=int(outcome.severity))


if __name__ == "__main__":
    app()
