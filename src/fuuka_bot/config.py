"""Bot configuration loaded from TOML."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigError
from .logging import get_logger

logger = get_logger("fuuka_bot.config")

DEFAULT_PREFIX = "%%"
ACCESS_TOKEN_ENV = "FUUKA_ACCESS_TOKEN"
DEVICE_ID_ENV = "FUUKA_DEVICE_ID"


@dataclass(frozen=True, slots=True)
class CommandConfig:
    prefix: str = DEFAULT_PREFIX


@dataclass(frozen=True, slots=True)
class MatrixConfig:
    homeserver: str
    user_id: str
    access_token: str
    device_id: str | None = None
    timeout: float = 30.0


@dataclass(frozen=True, slots=True)
class ServicesConfig:
    hitokoto: str | None = None
    pixiv: str = "https://www.pixiv.net"
    bilibili: str = "https://www.bilibili.com"
    crates: str = "https://crates.io"
    timeout: float = 20.0


@dataclass(frozen=True, slots=True)
class TagTrigger:
    """Tags that mark an illustration as bait for ``target``."""

    target: str
    required_tags: frozenset[str]
    rooms: frozenset[str] | None = None

    def matches(self, tags: set[str], room_id: str) -> bool:
        if self.rooms is not None and room_id not in self.rooms:
            return False
        return self.required_tags <= tags


@dataclass(frozen=True, slots=True)
class PixivConfig:
    enabled: bool = False
    r18: bool = False
    token: str | None = None
    traps: tuple[TagTrigger, ...] = ()

    def check_traps(self, tags: set[str], room_id: str) -> list[str]:
        return [trap.target for trap in self.traps if trap.matches(tags, room_id)]


@dataclass(frozen=True, slots=True)
class RoomFeatures:
    jerryxiao: bool = False
    fortune: bool = False
    pixiv: bool = False
    pixiv_r18: bool = False
    link_preview: bool = False


@dataclass(frozen=True, slots=True)
class BotConfig:
    matrix: MatrixConfig
    admin_user: str | None = None
    command: CommandConfig = field(default_factory=CommandConfig)
    services: ServicesConfig = field(default_factory=ServicesConfig)
    pixiv: PixivConfig = field(default_factory=PixivConfig)
    features: Mapping[str, RoomFeatures] = field(default_factory=dict)
    templates_dir: Path | None = None
    config_path: Path | None = None

    def features_for(self, room_id: str) -> RoomFeatures:
        return self.features.get(room_id) or RoomFeatures()


def _expand_path(s: str) -> Path:
    return Path(os.path.expandvars(os.path.expanduser(s)))


def _env(name: str) -> str:
    return (os.environ.get(name) or "").strip()


def _table(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise ConfigError(f"{key} must be a table")
    return value


def _require_str(table: dict[str, Any], key: str, *, where: str) -> str:
    value = str(table.get(key) or "").strip()
    if not value:
        raise ConfigError(f"Missing config key: {where}.{key}")
    return value


def _optional_str(table: dict[str, Any], key: str) -> str | None:
    value = table.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _bool(table: dict[str, Any], key: str, *, where: str) -> bool:
    value = table.get(key, False)
    if not isinstance(value, bool):
        raise ConfigError(f"{where}.{key} must be a boolean")
    return value


def _str_list(value: Any, *, where: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{where} must be a list of strings")
    return value


def _parse_matrix(data: dict[str, Any]) -> MatrixConfig:
    table = _table(data, "matrix")
    access_token = _env(ACCESS_TOKEN_ENV) or _require_str(
        table, "access-token", where="matrix"
    )
    device_id = _env(DEVICE_ID_ENV) or _optional_str(table, "device-id")
    return MatrixConfig(
        homeserver=_require_str(table, "homeserver", where="matrix").rstrip("/"),
        user_id=_require_str(table, "user-id", where="matrix"),
        access_token=access_token,
        device_id=device_id,
        timeout=float(table.get("timeout", 30)),
    )


def _parse_services(data: dict[str, Any]) -> ServicesConfig:
    table = _table(data, "services")
    defaults = ServicesConfig()
    return ServicesConfig(
        hitokoto=_optional_str(table, "hitokoto"),
        pixiv=_optional_str(table, "pixiv") or defaults.pixiv,
        bilibili=_optional_str(table, "bilibili") or defaults.bilibili,
        crates=_optional_str(table, "crates") or defaults.crates,
        timeout=float(table.get("timeout", defaults.timeout)),
    )


def _parse_traps(raw: Any) -> tuple[TagTrigger, ...]:
    if not isinstance(raw, list):
        raise ConfigError("pixiv.traps must be an array of tables")
    traps: list[TagTrigger] = []
    for index, entry in enumerate(raw):
        where = f"pixiv.traps[{index}]"
        if not isinstance(entry, dict):
            raise ConfigError(f"{where} must be a table")
        rooms = entry.get("rooms")
        traps.append(
            TagTrigger(
                target=_require_str(entry, "target", where=where),
                required_tags=frozenset(
                    _str_list(entry.get("required-tags"), where=f"{where}.required-tags")
                ),
                rooms=None
                if rooms is None
                else frozenset(_str_list(rooms, where=f"{where}.rooms")),
            )
        )
    return tuple(traps)


def _parse_pixiv(data: dict[str, Any]) -> PixivConfig:
    table = _table(data, "pixiv")
    return PixivConfig(
        enabled=_bool(table, "enabled", where="pixiv"),
        r18=_bool(table, "r18", where="pixiv"),
        token=_optional_str(table, "token"),
        traps=_parse_traps(table.get("traps", [])),
    )


def _parse_features(data: dict[str, Any]) -> dict[str, RoomFeatures]:
    raw = data.get("features", [])
    if not isinstance(raw, list):
        raise ConfigError("features must be an array of tables")
    features: dict[str, RoomFeatures] = {}
    for index, entry in enumerate(raw):
        where = f"features[{index}]"
        if not isinstance(entry, dict):
            raise ConfigError(f"{where} must be a table")
        room_id = _require_str(entry, "room", where=where)
        features[room_id] = RoomFeatures(
            jerryxiao=_bool(entry, "jerryxiao", where=where),
            fortune=_bool(entry, "fortune", where=where),
            pixiv=_bool(entry, "pixiv", where=where),
            pixiv_r18=_bool(entry, "pixiv-r18", where=where),
            link_preview=_bool(entry, "link-preview", where=where),
        )
    return features


def parse_config(data: dict[str, Any], *, config_path: Path | None = None) -> BotConfig:
    command = _table(data, "command")
    prefix = command.get("prefix", DEFAULT_PREFIX)
    if not isinstance(prefix, str) or not prefix.strip():
        raise ConfigError("command.prefix must be a non-empty string")
    templates = _table(data, "templates")
    templates_dir = _optional_str(templates, "directory")
    admin_user = _optional_str(data, "admin-user")
    if admin_user is None:
        logger.warning("fuuka.config.no_admin")
    return BotConfig(
        matrix=_parse_matrix(data),
        admin_user=admin_user,
        command=CommandConfig(prefix=prefix.strip()),
        services=_parse_services(data),
        pixiv=_parse_pixiv(data),
        features=_parse_features(data),
        templates_dir=_expand_path(templates_dir) if templates_dir else None,
        config_path=config_path,
    )


def load_config(path: Path) -> BotConfig:
    """Read and validate the TOML file at ``path``."""
    path = _expand_path(str(path))
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from exc
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"invalid TOML in {path}: {exc}") from exc
    config = parse_config(data, config_path=path)
    logger.info(
        "fuuka.config.loaded",
        path=str(path),
        user_id=config.matrix.user_id,
        rooms_with_features=len(config.features),
    )
    return config
