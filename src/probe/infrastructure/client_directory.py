"""Sensu API client listing the known clients."""

import json
from pathlib import Path

import httpx
from loguru import logger

from src.probe.domain.exceptions import ConfigurationError, DirectoryError
from src.probe.domain.protocols import ClientLister

DEFAULT_CONFIG_FILE = "/etc/sensu/config.json"
DEFAULT_CONFIG_DIR = "/etc/sensu/conf.d"


def _load_settings(path: Path) -> dict:
    try:
        settings = json.loads(path.read_text())
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Cannot read Sensu settings from {path}: {e}") from e
    return settings if isinstance(settings, dict) else {}


def _api_connection(api: dict) -> dict:
    return {
        "url": f"http://{api.get('host', 'localhost')}:{api.get('port', 4567)}",
        "user": api.get("user"),
        "password": api.get("password"),
    }


def read_api_settings(settings_file: str | Path) -> dict:
    """
    Read the ``api`` section of a Sensu JSON settings file.

    Returns:
        Dict with ``url`` and optional ``user``/``password``

    Raises:
        ConfigurationError: If the file is unreadable or has no api section
    """
    path = Path(settings_file)
    api = _load_settings(path).get("api")
    if not isinstance(api, dict):
        raise ConfigurationError(f"api settings not found in {path}")
    return _api_connection(api)


def discover_settings_files(
    config_files: str | None = None,
    config_file: str | Path = DEFAULT_CONFIG_FILE,
    config_dir: str | Path = DEFAULT_CONFIG_DIR,
) -> list[Path]:
    """
    List the Sensu settings files a Sensu plugin would load, in load order.

    A colon separated ``config_files`` list replaces the defaults; otherwise
    the main config file is followed by every ``*.json`` under the config
    directory, sorted by path.
    """
    if config_files:
        return [Path(name) for name in config_files.split(":") if name]

    paths = [Path(config_file)]
    directory = Path(config_dir)
    if directory.is_dir():
        paths.extend(sorted(directory.rglob("*.json")))
    return [path for path in paths if path.is_file()]


def load_api_settings(paths: list[Path]) -> dict | None:
    """
    Merge the ``api`` sections of several settings files, later files winning.

    Unreadable files are skipped with a warning.

    Returns:
        Dict with ``url`` and optional ``user``/``password``, or None when no
        file has an api section
    """
    api: dict = {}
    for path in paths:
        try:
            section = _load_settings(path).get("api")
        except ConfigurationError as e:
            logger.warning(e.message)
            continue
        if isinstance(section, dict):
            api.update(section)

    if not api:
        logger.debug(f"No api section in {len(paths)} Sensu settings files")
        return None
    return _api_connection(api)


class SensuApiClient(ClientLister):
    """Lists client names through the Sensu API ``/clients`` endpoint."""

    def __init__(
        self,
        api_url: str,
        user: str | None = None,
        password: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.auth = (user, password or "") if user else None
        self.timeout = timeout
        self.transport = transport

    async def list_clients(self) -> list[str]:
        """Return the names of all clients known to the Sensu API."""
        url = f"{self.api_url}/clients"
        try:
            async with httpx.AsyncClient(auth=self.auth, timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            raise DirectoryError(f"Failed to reach Sensu API at {url}: {e}") from e

        if response.status_code != 200:
            raise DirectoryError(
                f"Sensu API answered {response.status_code} for {url}",
                details={"status_code": response.status_code},
            )

        try:
            clients = [client["name"] for client in response.json()]
        except (ValueError, TypeError, KeyError) as e:
            raise DirectoryError(f"Unexpected client list from {url}: {e}") from e

        logger.debug(f"Sensu API listed {len(clients)} clients")
        return clients
