"""
Matrix Status configuration

The settings collaborator owns persistence; this module only turns a settings
mapping into an immutable snapshot. A changed setting produces a new snapshot
via ``replace()``, nothing is mutated in place.
"""

import dataclasses
import json
import logging
import os
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Any

MIN_SYNC_INTERVAL = 5
DEFAULT_SYNC_INTERVAL = 30
DEFAULT_CACHE_DIR = Path("~/.cache/matrix-status/avatars")

ENV_HOMESERVER = "MATRIX_STATUS_HOMESERVER"
ENV_TOKEN = "MATRIX_STATUS_TOKEN"

logger = logging.getLogger("matrix_status.config")


def read_int_setting(
    key: str, value: Any, default: int, floor: int | None = None
) -> int:
    """
    Read an integer setting as the preferences store may hand it over

    Numbers and numeric strings are accepted. Booleans, empty values and
    anything unparseable fall back to ``default``; results below ``floor``
    are raised to it.
    """
    if value is None or value == "":
        result = default
    elif isinstance(value, bool):
        logger.warning(
            f"Setting '{key}' expects a number, got {value}; using {default}"
        )
        result = default
    else:
        try:
            result = int(value.strip() if isinstance(value, str) else value)
        except (TypeError, ValueError):
            logger.warning(
                f"Setting '{key}' has invalid value {value!r}; using {default}"
            )
            result = default

    if floor is not None and result < floor:
        logger.warning(f"Setting '{key}'={result} is below {floor}; using {floor}")
        result = floor
    return result


class ClientType(IntEnum):
    """Preferred client used to open rooms."""

    WEB = 0
    ELEMENT = 1
    FRACTAL = 2

    @classmethod
    def parse(cls, value: Any) -> "ClientType":
        if isinstance(value, ClientType):
            return value
        if isinstance(value, str) and not value.strip().isdigit():
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown client type: {value}") from None
        return cls(read_int_setting("client-type", value, default=ClientType.WEB))


def normalize_homeserver(homeserver: str) -> str:
    """Prefix a scheme when missing and strip the trailing slash."""
    homeserver = (homeserver or "").strip()
    if not homeserver:
        return ""
    if not homeserver.startswith("http"):
        homeserver = f"https://{homeserver}"
    return homeserver.rstrip("/")


@dataclass(frozen=True)
class MatrixStatusConfig:
    homeserver_url: str = ""
    access_token: str = ""
    sync_interval: int = DEFAULT_SYNC_INTERVAL
    client_type: ClientType = ClientType.WEB
    qr_code_enabled: bool = True
    cache_dir: Path = DEFAULT_CACHE_DIR

    def __post_init__(self):
        # frozen: normalize through object.__setattr__
        object.__setattr__(
            self,
            "sync_interval",
            read_int_setting(
                "sync-interval",
                self.sync_interval,
                DEFAULT_SYNC_INTERVAL,
                floor=MIN_SYNC_INTERVAL,
            ),
        )
        object.__setattr__(self, "client_type", ClientType.parse(self.client_type))
        object.__setattr__(self, "cache_dir", Path(self.cache_dir).expanduser())
        object.__setattr__(self, "access_token", (self.access_token or "").strip())

    @property
    def homeserver(self) -> str:
        """Homeserver base URL, normalized for request building."""
        return normalize_homeserver(self.homeserver_url)

    @property
    def is_complete(self) -> bool:
        return bool(self.access_token and self.homeserver)

    def replace(self, **changes) -> "MatrixStatusConfig":
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, data: dict | None) -> "MatrixStatusConfig":
        """Build a snapshot from settings keys as the preferences store names them."""
        data = data or {}
        return cls(
            homeserver_url=data.get("homeserver-url", ""),
            access_token=data.get("access-token", ""),
            sync_interval=data.get("sync-interval", DEFAULT_SYNC_INTERVAL),
            client_type=data.get("client-type", ClientType.WEB),
            qr_code_enabled=bool(data.get("generate-qr-code-enable", True)),
            cache_dir=data.get("cache-dir") or DEFAULT_CACHE_DIR,
        )


def load_config(path: str | Path | None = None, environ=None) -> MatrixStatusConfig:
    """
    Load a settings file and apply environment overrides

    Args:
        path: JSON settings file; missing file means defaults
        environ: Mapping used for overrides (defaults to ``os.environ``)

    Returns:
        Configuration snapshot
    """
    environ = os.environ if environ is None else environ
    data: dict = {}
    if path is not None:
        path = Path(path).expanduser()
        if path.exists():
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError(f"Settings file {path} must contain a JSON object")

    if environ.get(ENV_HOMESERVER):
        data["homeserver-url"] = environ[ENV_HOMESERVER]
    if environ.get(ENV_TOKEN):
        data["access-token"] = environ[ENV_TOKEN]

    return MatrixStatusConfig.from_dict(data)
