from __future__ import annotations

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

DEFAULT_REMOTE_PORT = 22
DEFAULT_REMOTE_TIMEOUT = 30
DEFAULT_STATE_DB = "~/.sclmdelta/state.sqlite3"


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class LibraryConfig:
    project: str
    alternate: str
    group: str
    types: tuple[str, ...] = ()
    job_card: str = ""

    @property
    def library_key(self) -> str:
        return f"{self.project}.{self.alternate}.{self.group}"


@dataclass(frozen=True)
class RemoteConfig:
    host: str
    user: str
    submit_command: str
    port: int = DEFAULT_REMOTE_PORT
    timeout: int = DEFAULT_REMOTE_TIMEOUT

    @property
    def address(self) -> str:
        return f"{self.user}@{self.host}:{self.port}"


@dataclass(frozen=True)
class AppConfig:
    library: LibraryConfig
    remote: RemoteConfig | None = None
    state_db: Path = Path(DEFAULT_STATE_DB)


def _require_str(table: Mapping[str, object], key: str, section: str) -> str:
    value = table.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"[{section}] {key} must be a non-empty string")
    return value.strip()


def _library_from_table(table: Mapping[str, object]) -> LibraryConfig:
    types = table.get("types", [])
    if not isinstance(types, list) or not all(isinstance(t, str) for t in types):
        raise ConfigError("[library] types must be a list of strings")
    job_card = table.get("job_card", "")
    if not isinstance(job_card, str):
        raise ConfigError("[library] job_card must be a string")
    return LibraryConfig(
        project=_require_str(table, "project", "library"),
        alternate=_require_str(table, "alternate", "library"),
        group=_require_str(table, "group", "library"),
        types=tuple(t.strip() for t in types if t.strip()),
        job_card=job_card,
    )


def _remote_from_table(table: Mapping[str, object]) -> RemoteConfig:
    port = table.get("port", DEFAULT_REMOTE_PORT)
    timeout = table.get("timeout", DEFAULT_REMOTE_TIMEOUT)
    if not isinstance(port, int) or not 0 < port < 65536:
        raise ConfigError("[remote] port must be an integer between 1 and 65535")
    if not isinstance(timeout, int) or timeout <= 0:
        raise ConfigError("[remote] timeout must be a positive integer")
    return RemoteConfig(
        host=_require_str(table, "host", "remote"),
        user=_require_str(table, "user", "remote"),
        submit_command=_require_str(table, "submit_command", "remote"),
        port=port,
        timeout=timeout,
    )


def load_config(path: Path) -> AppConfig:
    try:
        data = tomllib.loads(path.expanduser().read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc

    library = data.get("library")
    if not isinstance(library, dict):
        raise ConfigError("Missing [library] section")
    remote = data.get("remote")
    if remote is not None and not isinstance(remote, dict):
        raise ConfigError("[remote] must be a table")
    state_db = data.get("state_db", DEFAULT_STATE_DB)
    if not isinstance(state_db, str):
        raise ConfigError("state_db must be a path string")

    return AppConfig(
        library=_library_from_table(library),
        remote=_remote_from_table(remote) if remote is not None else None,
        state_db=Path(state_db).expanduser(),
    )
