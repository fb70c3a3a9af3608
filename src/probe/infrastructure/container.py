"""Dependency injection container for the probe."""

from dependency_injector import containers, providers

from src.probe.infrastructure.client_directory import SensuApiClient
from src.probe.infrastructure.event_sink import StdoutEventSink, UdpEventSink
from src.probe.infrastructure.influxdb_backend import InfluxDBBackend


class ProbeContainer(containers.DeclarativeContainer):
    """Dependency injection container for the probe's collaborators."""

    config = providers.Configuration()

    # Time-series backend
    backend = providers.Singleton(
        InfluxDBBackend,
        host=config.influxdb.host,
        port=config.influxdb.port,
        database=config.influxdb.database,
        username=config.influxdb.username,
        password=config.influxdb.password,
        use_ssl=config.influxdb.use_ssl,
        verify_ssl=config.influxdb.verify_ssl,
    )

    # Client directory
    client_lister = providers.Singleton(
        SensuApiClient,
        api_url=config.sensu.api_url,
        user=config.sensu.api_user,
        password=config.sensu.api_password,
    )

    # Event sink, "udp" or "stdout" (dry run)
    event_sink = providers.Selector(
        config.sink,
        udp=providers.Singleton(
            UdpEventSink,
            host=config.sensu.client_host,
            port=config.sensu.client_port,
        ),
        stdout=providers.Singleton(StdoutEventSink),
    )


def init_container(config: dict) -> ProbeContainer:
    """Build a container configured from the flattened application settings."""
    container = ProbeContainer()
    container.config.from_dict(config)
    return container
