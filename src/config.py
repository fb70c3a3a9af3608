"""Configuration for the probe."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.probe.domain.models import RunMode


class InfluxDBConfig(BaseSettings):
    """Configuration for the InfluxDB backend."""

    model_config = SettingsConfigDict(env_prefix="INFLUXDB_", env_file=".env", extra="ignore")

    host: str = Field(default="localhost", description="InfluxDB host")
    port: int = Field(default=8086, ge=1, le=65535, description="InfluxDB HTTP port")
    database: str = Field(default="collectd", description="InfluxDB database")
    username: str | None = Field(default=None, description="InfluxDB user")
    password: str | None = Field(default=None, description="InfluxDB password")
    use_ssl: bool = Field(default=False, description="Connect over https")
    verify_ssl: bool = Field(default=True, description="Verify the server certificate")


class SensuConfig(BaseSettings):
    """Configuration for the Sensu API and client socket."""

    model_config = SettingsConfigDict(env_prefix="SENSU_", env_file=".env", extra="ignore")

    api_url: str | None = Field(default=None, description="Sensu API base URL (e.g. http://localhost:4567)")
    api_user: str | None = Field(default=None, description="Sensu API user")
    api_password: str | None = Field(default=None, description="Sensu API password")
    settings_file: str | None = Field(default=None, description="Sensu JSON settings file holding an api section")
    config_files: str | None = Field(
        default=None, description="Colon separated Sensu settings files, replacing config_file and config_dir"
    )
    config_file: str = Field(default="/etc/sensu/config.json", description="Main Sensu settings file")
    config_dir: str = Field(default="/etc/sensu/conf.d", description="Directory of Sensu settings snippets")
    client_host: str = Field(default="127.0.0.1", description="Sensu client socket host")
    client_port: int = Field(default=3030, ge=1, le=65535, description="Sensu client socket port")


class CheckConfig(BaseSettings):
    """Configuration for the check itself."""

    model_config = SettingsConfigDict(env_prefix="CHECK_", env_file=".env", extra="ignore")

    query: str | None = Field(default=None, description="InfluxQL query to execute")
    json_path: str | None = Field(default=None, description="JSON path selecting the value from each record")
    check_name: str = Field(default="%{name}-%{tags.instance}-%{tags.type}", description="Check name template")
    msg: str | None = Field(default=None, description="Message template for every event")
    name_prefix: str = Field(default="influxdb-q-", description="Prefix prepended to every check name")
    host_field: str = Field(default="host", description="Measurement tag holding the host name")
    mode: RunMode = Field(default=RunMode.PER_HOST, description="per-host or single-query")
    filter_clients: bool = Field(default=False, description="Drop records from clients unknown to Sensu")
    require_clients: bool = Field(default=False, description="Fail when the client list cannot be fetched")
    warn: str | None = Field(default=None, description="Warning expression (e.g. value >= 5)")
    crit: str | None = Field(default=None, description="Critical expression (e.g. value >= 10)")
    handlers: list[str] = Field(default_factory=list, description="Sensu handlers for every event")
    timeout: float = Field(default=30.0, gt=0, description="Seconds allowed for each query")
    dryrun: bool = Field(default=False, description="Print events instead of sending them")


class AppConfig(BaseSettings):
    """Probe configuration."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    influxdb: InfluxDBConfig = Field(default_factory=InfluxDBConfig)
    sensu: SensuConfig = Field(default_factory=SensuConfig)
    check: CheckConfig = Field(default_factory=CheckConfig)
    log_level: str = Field(default="WARNING", description="Log level for stderr logging")

    def container_config(self) -> dict:
        """Flatten into the dict the dependency container is configured from."""
        return {
            "influxdb": self.influxdb.model_dump(),
            "sensu": self.sensu.model_dump(),
            "sink": "stdout" if self.check.dryrun else "udp",
        }
