"""Persistent JSON configuration: settings and the registry of managed links."""

from __future__ import annotations

import json
import os
import re
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from synclink.util import (
    SyncLinkError,
    ensure_dir_exists,
    get_abs_path,
    get_config_path,
    path_exists,
    warning_print,
)

CONFIG_FILE_NAME = "config.json"
CURRENT_VERSION = "1.0"

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_lock = threading.RLock()
_instance: Config | None = None

_TIME_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})$"
)


class ConfigError(SyncLinkError):
    """Raised when the configuration cannot be read, parsed or saved."""


def _format_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.astimezone()
    text = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    offset = value.utcoffset()
    if not offset:
        return text + "Z"
    total = int(offset.total_seconds())
    sign = "+" if total >= 0 else "-"
    total = abs(total)
    return f"{text}{sign}{total // 3600:02d}:{total % 3600 // 60:02d}"


def _parse_time(text: Any) -> datetime:
    if not isinstance(text, str):
        raise ConfigError(f"无效的时间值: {text!r}")
    match = _TIME_RE.match(text)
    if match is None:
        raise ConfigError(f"无效的时间格式: '{text}'")
    year, month, day, hour, minute, second, fraction, zone = match.groups()
    micro = int((fraction or "0")[:6].ljust(6, "0"))
    if zone == "Z":
        tz = timezone.utc
    else:
        sign = 1 if zone[0] == "+" else -1
        tz = timezone(sign * timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6])))
    try:
        return datetime(
            int(year), int(month), int(day), int(hour), int(minute), int(second), micro, tzinfo=tz
        )
    except ValueError as exc:
        raise ConfigError(f"无效的时间值: '{text}': {exc}") from exc


def _expect(value: Any, kind: type, name: str, default: Any) -> Any:
    if value is None:
        return default
    if not isinstance(value, kind):
        raise ConfigError(f"字段 '{name}' 的类型无效: {value!r}")
    return value


@dataclass
class Settings:
    """General application settings."""

    default_sync_path: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"default_sync_path": self.default_sync_path}

    @classmethod
    def from_dict(cls, data: Any) -> Settings:
        data = _expect(data, dict, "settings", {})
        return cls(_expect(data.get("default_sync_path"), str, "default_sync_path", ""))


@dataclass
class LinkInfo:
    """Details of one managed symbolic link or shortcut."""

    shortcut: bool = False
    original_path: str = ""
    synced_path: str = ""
    created_at: datetime = ZERO_TIME

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready mapping; an empty synced_path is left out."""
        data: dict[str, Any] = {"shortcut": self.shortcut, "original_path": self.original_path}
        if self.synced_path:
            data["synced_path"] = self.synced_path
        data["created_at"] = _format_time(self.created_at)
        return data

    @classmethod
    def from_dict(cls, data: Any) -> LinkInfo:
        """Build a LinkInfo from a decoded JSON object."""
        data = _expect(data, dict, "link", {})
        created = data.get("created_at")
        return cls(
            shortcut=_expect(data.get("shortcut"), bool, "shortcut", False),
            original_path=_expect(data.get("original_path"), str, "original_path", ""),
            synced_path=_expect(data.get("synced_path"), str, "synced_path", ""),
            created_at=ZERO_TIME if created is None else _parse_time(created),
        )


@dataclass
class Config:
    """Root configuration object, bound to the file it is saved to."""

    settings: Settings = field(default_factory=Settings)
    links: dict[str, LinkInfo] = field(default_factory=dict)
    version: str = CURRENT_VERSION
    path: str = field(default="", compare=False, repr=False)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready mapping, with links ordered by name."""
        return {
            "settings": self.settings.to_dict(),
            "links": {name: self.links[name].to_dict() for name in sorted(self.links)},
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Config:
        """Build a Config from a decoded JSON object."""
        data = _expect(data, dict, "config", {})
        raw_links = _expect(data.get("links"), dict, "links", {})
        return cls(
            settings=Settings.from_dict(data.get("settings")),
            links={name: LinkInfo.from_dict(info) for name, info in raw_links.items()},
            version=_expect(data.get("version"), str, "version", ""),
        )

    def get_default_sync_path(self) -> str:
        """Return the default sync path, raising if it is not set."""
        with _lock:
            if not self.settings.default_sync_path:
                raise ConfigError(
                    "配置中未设置 DefaultSyncPath。请使用 'synclink config set default_sync_path <path>'"
                )
            return self.settings.default_sync_path

    def set_default_sync_path(self, new_path: str) -> None:
        """Store the absolute form of new_path and save."""
        try:
            abs_path = get_abs_path(new_path)
        except SyncLinkError as exc:
            raise ConfigError(f"无效路径 '{new_path}': {exc}") from exc
        with _lock:
            self.settings.default_sync_path = abs_path
        self.save()

    def get_links(self) -> dict[str, LinkInfo]:
        """Return a copy of the link registry."""
        with _lock:
            return dict(self.links)

    def get_link(self, name: str) -> LinkInfo | None:
        """Return the named link, or None if it is not managed."""
        with _lock:
            return self.links.get(name)

    def add_link(self, name: str, info: LinkInfo) -> None:
        """Add or replace a link entry and save."""
        with _lock:
            self.links[name] = info
        self.save()

    def remove_link(self, name: str) -> bool:
        """Remove a link entry and save; return whether it existed."""
        with _lock:
            existed = self.links.pop(name, None) is not None
        if not existed:
            return False
        try:
            self.save()
        except ConfigError as exc:
            raise ConfigError(f"链接在内存中已移除但保存配置失败: {exc}") from exc
        return True

    def save(self) -> None:
        """Write the configuration to its file as indented JSON."""
        with _lock:
            if not self.path:
                raise ConfigError("获取保存用配置文件路径失败: 配置未绑定文件路径")
            self.version = CURRENT_VERSION
            _write(self.path, self)


def _write(path: str, cfg: Config) -> None:
    directory = os.path.dirname(path) or "."
    try:
        ensure_dir_exists(directory)
    except SyncLinkError as exc:
        raise ConfigError(f"确保配置目录 '{directory}' 存在失败: {exc}") from exc
    text = json.dumps(cfg.to_dict(), indent=2, ensure_ascii=False)
    try:
        with open(path, "w", encoding="utf-8") as handle:
            handle.write(text)
    except OSError as exc:
        raise ConfigError(f"写入配置文件 '{path}' 失败: {exc}") from exc


def _read(cfg_path: str) -> Config:
    try:
        exists = path_exists(cfg_path)
    except SyncLinkError as exc:
        raise ConfigError(f"检查配置文件在 '{cfg_path}' 是否存在失败: {exc}") from exc

    if not exists:
        print(f"在 '{cfg_path}' 找不到配置文件. 正在创建默认配置文件.")
        cfg = Config(path=cfg_path)
        try:
            ensure_dir_exists(os.path.dirname(cfg_path) or ".")
        except SyncLinkError as exc:
            raise ConfigError(f"无法创建配置文件 '{cfg_path}' 的目录: {exc}") from exc
        try:
            _write(cfg_path, cfg)
        except ConfigError as exc:
            raise ConfigError(f"无法保存默认配置文件 '{cfg_path}': {exc}") from exc
        print("默认配置文件创建成功.")
        return cfg

    try:
        with open(cfg_path, "rb") as handle:
            raw = handle.read()
    except OSError as exc:
        raise ConfigError(f"读取配置文件 '{cfg_path}' 失败: {exc}") from exc

    if not raw:
        warning_print(f"配置文件 '{cfg_path}' 为空。")
        raise ConfigError(f"解析空或无效配置文件 '{cfg_path}' 失败: unexpected end of JSON input")

    try:
        cfg = Config.from_dict(json.loads(raw.decode("utf-8")))
    except (ValueError, ConfigError) as exc:
        raise ConfigError(f"解析配置文件 '{cfg_path}' 失败: {exc}") from exc

    if cfg.version != CURRENT_VERSION:
        warning_print(
            f"配置文件版本不匹配（发现 '{cfg.version}'，需要 '{CURRENT_VERSION}'），可能会出现兼容性问题。"
        )
        cfg.version = CURRENT_VERSION
    cfg.path = cfg_path
    return cfg


def load_config(path: str | None = None) -> Config:
    """Load the configuration from path (default: next to the program) and make it current.

    A missing file is created with default contents.
    """
    global _instance
    if path is None:
        try:
            path = get_config_path()
        except SyncLinkError as exc:
            raise ConfigError(f"获取配置文件路径失败: {exc}") from exc
    with _lock:
        _instance = _read(path)
        return _instance


def get_config() -> Config:
    """Return the current configuration, loading it on first use."""
    with _lock:
        if _instance is not None:
            return _instance
    return load_config()


def save_config() -> None:
    """Save the current configuration."""
    with _lock:
        if _instance is None:
            raise ConfigError("配置未加载，无法保存")
        _instance.save()