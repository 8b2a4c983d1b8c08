"""Creating, removing and repairing managed symbolic links and shortcuts."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime

from synclink.config import ConfigError, LinkInfo, get_config
from synclink.util import (
    SyncLinkError,
    ensure_dir_exists,
    get_abs_path,
    is_dir,
    is_file,
    is_symlink,
    move_file_or_dir,
    path_exists,
    warning_print,
)


class LinkError(SyncLinkError):
    """Raised when a link or shortcut operation fails."""


class ShortcutBackend(ABC):
    """Platform support for start-menu shortcuts."""

    @abstractmethod
    def create(self, target_path: str, link_name: str, start_menu_path_base: str) -> str:
        """Create the shortcut file and return its path."""

    @abstractmethod
    def remove(self, link_name: str, start_menu_path_base: str, link_info: LinkInfo) -> None:
        """Delete the shortcut file; a missing file counts as removed."""

    @abstractmethod
    def relink(self, link_name: str, start_menu_path_base: str, link_info: LinkInfo) -> None:
        """Recreate the shortcut from the stored link information."""

    @abstractmethod
    def start_menu_programs_path(self) -> str:
        """Return the directory that holds start-menu program shortcuts."""


_backend: ShortcutBackend | None = None


def set_shortcut_backend(backend: ShortcutBackend | None) -> None:
    """Install the shortcut backend; None disables shortcut support."""
    global _backend
    _backend = backend


def _quiet(check: Callable[[str], bool], path: str) -> bool:
    try:
        return check(path)
    except SyncLinkError:
        return False


def _make_symlink(synced_path: str, link_path: str) -> None:
    os.symlink(synced_path, link_path, target_is_directory=os.path.isdir(synced_path))


def _remove_symlink(path: str) -> None:
    try:
        os.remove(path)
    except OSError:
        if os.name != "nt":
            raise
        os.rmdir(path)


def _is_empty(path: str) -> bool:
    try:
        info = os.stat(path)
    except OSError:
        return True
    if os.path.isdir(path):
        try:
            return not os.listdir(path)
        except OSError:
            return False
    return info.st_size == 0


def create_symbolic_link(target_path: str, link_name: str, sync_dir: str) -> None:
    """Move target_path into sync_dir and leave a symlink in its place."""
    cfg = get_config()

    abs_target = get_abs_path(target_path)
    if not path_exists(abs_target):
        raise LinkError(f"目标路径 '{abs_target}' 不存在")

    if cfg.get_link(link_name) is not None:
        raise LinkError(f"链接名称 '{link_name}' 已存在")

    target_is_dir = _quiet(is_dir, abs_target)
    target_is_file = _quiet(is_file, abs_target)

    if target_is_file:
        files_dir = os.path.join(sync_dir, "files")
        ensure_dir_exists(files_dir)
        synced_path = os.path.join(files_dir, link_name)
    elif target_is_dir:
        synced_path = os.path.join(sync_dir, link_name)
        if _quiet(path_exists, synced_path):
            raise LinkError(f"同步目标路径 '{synced_path}' 已存在")
        parent = os.path.dirname(synced_path)
        try:
            ensure_dir_exists(parent)
        except SyncLinkError as exc:
            raise LinkError(f"无法创建同步目录的父目录 '{parent}': {exc}") from exc
    else:
        raise LinkError(f"目标路径 '{abs_target}' 不是常规文件或目录，不支持链接")

    print(f"正在移动 '{abs_target}' 到 '{synced_path}'...")
    try:
        move_file_or_dir(abs_target, synced_path)
    except SyncLinkError as exc:
        raise LinkError(f"移动 '{abs_target}' 到 '{synced_path}' 失败: {exc}") from exc

    print(f"正在创建符号链接 '{abs_target}' -> '{synced_path}'...")
    try:
        _make_symlink(synced_path, abs_target)
    except OSError as exc:
        try:
            move_file_or_dir(synced_path, abs_target)
        except SyncLinkError as back_exc:
            warning_print(
                f"回滚移动操作失败！ '{synced_path}' 可能需要手动恢复到 '{abs_target}'。{back_exc}"
            )
        raise LinkError(f"创建符号链接 '{abs_target}' 失败: {exc}") from exc

    info = LinkInfo(
        shortcut=False,
        original_path=abs_target,
        synced_path=synced_path,
        created_at=datetime.now().astimezone(),
    )
    try:
        cfg.add_link(link_name, info)
    except ConfigError as exc:
        warning_print(f"物理链接已创建，但更新配置文件失败！请手动检查 config.json。错误: {exc}")
        raise LinkError(f"链接已创建 '{link_name}'，但保存配置失败: {exc}") from exc

    print(f"成功创建并记录符号链接 '{link_name}'.")


def _symlink_info(link_name: str, verb: str) -> LinkInfo:
    try:
        cfg = get_config()
    except ConfigError as exc:
        raise LinkError(f"加载配置失败: {exc}") from exc
    info = cfg.get_link(link_name)
    if info is None:
        raise LinkError(f"链接 '{link_name}' 未在配置中找到")
    if info.shortcut:
        raise LinkError(
            f"链接 '{link_name}' 是一个快捷方式，请使用 {verb} shortcut 命令（或确保逻辑分离）"
        )
    return info


def remove_symbolic_link(link_name: str) -> None:
    """Delete the symlink, move the synced data back and forget the link."""
    info = _symlink_info(link_name, "unlink")
    cfg = get_config()

    if not info.original_path or not info.synced_path:
        raise LinkError(
            f"链接 '{link_name}' 的配置信息不完整 (original_path 或 synced_path 为空)"
        )

    original = info.original_path
    synced = info.synced_path
    original_exists = _quiet(path_exists, original) or os.path.lexists(original) and _quiet(is_symlink, original)
    link_is_symlink = False
    if original_exists:
        link_is_symlink = _quiet(is_symlink, original)
        if not link_is_symlink:
            warning_print(
                f"原始路径 '{original}' 存在但不是预期的符号链接。将仅尝试移除配置和移动同步数据（如果存在）。"
            )
        else:
            try:
                current = os.readlink(original)
            except OSError:
                current = None
            if current is not None and current != synced:
                warning_print(
                    f"符号链接 '{original}' 的目标 ('{current}') 与配置中的 ('{synced}') 不匹配。仍将继续移除。"
                )

    synced_exists = _quiet(path_exists, synced)
    if not synced_exists:
        warning_print(f"同步路径 '{synced}' 不存在！无法将数据移回。")

    if link_is_symlink:
        try:
            _remove_symlink(original)
        except OSError as exc:
            raise LinkError(f"删除符号链接 '{original}' 失败: {exc}") from exc
    elif original_exists:
        print(f"跳过删除 '{original}'，因为它不是符号链接。")
        if not _is_empty(original):
            message = (
                f"原始路径 '{original}' 存在且非空，并且不是预期的符号链接。"
                f"为防止数据丢失，取消将 '{synced}' 移回的操作。请手动处理。"
            )
            try:
                cfg.remove_link(link_name)
            except ConfigError as exc:
                message += f" (移除配置记录也失败: {exc})"
            else:
                message += " (配置记录已移除)"
            raise LinkError(message)
        print(f"原始路径 '{original}' 存在但非符号链接，且为空，将尝试移动内容...")

    if synced_exists:
        try:
            move_file_or_dir(synced, original)
        except SyncLinkError as exc:
            raise LinkError(f"无法将 '{synced}' 移回 '{original}': {exc}。请手动恢复。") from exc
    else:
        warning_print(f"跳过移回操作，因为同步路径 '{synced}' 不存在。")

    try:
        removed = cfg.remove_link(link_name)
    except ConfigError as exc:
        raise LinkError(f"物理文件/链接已处理，但从配置中移除 '{link_name}' 失败: {exc}") from exc
    if not removed:
        warning_print(f"尝试移除链接 '{link_name}'，但配置中似乎已不存在。")


def relink_symbolic_link(link_name: str) -> None:
    """Recreate the symlink if it is missing or points elsewhere."""
    info = _symlink_info(link_name, "relink")

    if not info.original_path or not info.synced_path:
        raise LinkError(f"链接 '{link_name}' 的配置信息不完整")

    original = info.original_path
    synced = info.synced_path

    if not os.path.lexists(original):
        print(f"符号链接 '{original}' 不存在，需要重新创建。")
    elif not _quiet(is_symlink, original):
        raise LinkError(f"路径 '{original}' 存在但不是符号链接，无法重新链接。请手动解决冲突")
    else:
        try:
            current = os.readlink(original)
        except OSError as exc:
            warning_print(f"无法读取符号链接 '{original}' 的目标: {exc}。将尝试重新创建。")
            try:
                _remove_symlink(original)
            except OSError as rem_exc:
                raise LinkError(
                    f"无法移除损坏的符号链接 '{original}'，重新链接失败: {rem_exc}"
                ) from rem_exc
        else:
            if current == synced:
                return
            print(f"符号链接 '{original}' 指向 '{current}' 而不是预期的 '{synced}'。将尝试修正。")
            try:
                _remove_symlink(original)
            except OSError as rem_exc:
                raise LinkError(
                    f"无法移除指向错误的符号链接 '{original}'，重新链接失败: {rem_exc}"
                ) from rem_exc

    if not _quiet(path_exists, synced):
        raise LinkError(f"同步路径 '{synced}' 不存在，无法重新创建链接 '{original}'")

    print(f"正在重新创建符号链接 '{original}' -> '{synced}'...")
    try:
        _make_symlink(synced, original)
    except OSError as exc:
        raise LinkError(f"重新创建符号链接 '{original}' 失败: {exc}") from exc
    print("符号链接重新创建成功.")


def create_link_or_shortcut(
    target_path: str, link_name: str, sync_path_base: str, is_shortcut: bool
) -> None:
    """Create either a start-menu shortcut or a symbolic link."""
    if not is_shortcut:
        create_symbolic_link(target_path, link_name, sync_path_base)
        return

    backend = _backend
    if backend is None:
        raise LinkError("创建快捷方式的功能在此系统上不受支持或未正确初始化")
    try:
        start_menu = backend.start_menu_programs_path()
    except (SyncLinkError, OSError) as exc:
        raise LinkError(f"无法获取开始菜单路径: {exc}") from exc

    try:
        abs_target = get_abs_path(target_path)
    except SyncLinkError as exc:
        raise LinkError(f"获取 '{target_path}' 的绝对路径失败: {exc}") from exc
    try:
        exists = path_exists(abs_target)
    except SyncLinkError as exc:
        raise LinkError(f"检查路径 '{abs_target}' 时出错: {exc}") from exc
    if not exists:
        raise LinkError(f"快捷方式的目标路径 '{abs_target}' 不存在")

    shortcut_file = backend.create(abs_target, link_name, start_menu)

    try:
        cfg = get_config()
    except ConfigError as exc:
        warning_print(
            f"快捷方式文件 '{shortcut_file}' 已创建，但加载/保存配置失败: {exc}。请手动检查配置。"
        )
        raise LinkError(f"快捷方式 '{link_name}' 已创建，但处理配置失败: {exc}") from exc

    info = LinkInfo(
        shortcut=True,
        original_path=abs_target,
        synced_path=shortcut_file,
        created_at=datetime.now().astimezone(),
    )
    try:
        cfg.add_link(link_name, info)
    except ConfigError as exc:
        warning_print(
            f"快捷方式文件 '{shortcut_file}' 已创建，但保存配置失败: {exc}。正在尝试移除快捷方式文件..."
        )
        try:
            os.remove(shortcut_file)
        except OSError as rem_exc:
            warning_print(f"移除快捷方式文件 '{shortcut_file}' 失败: {rem_exc}")
        raise LinkError(f"快捷方式 '{link_name}' 已创建，但保存配置失败: {exc}") from exc

    print(f"成功创建并记录快捷方式 '{link_name}' (位于 '{shortcut_file}')。")


def remove_link_or_shortcut(link_name: str) -> None:
    """Remove the named link, choosing symlink or shortcut handling from the config."""
    try:
        cfg = get_config()
    except ConfigError as exc:
        raise LinkError(f"加载配置失败: {exc}") from exc

    info = cfg.get_link(link_name)
    if info is None:
        raise LinkError(f"链接 '{link_name}' 未在配置中找到")

    if not info.shortcut:
        try:
            remove_symbolic_link(link_name)
        except SyncLinkError as exc:
            raise LinkError(f"移除符号链接 '{link_name}' 失败: {exc}") from exc
        return

    removal_error: Exception | None = None
    backend = _backend
    if backend is None:
        removal_error = LinkError("移除快捷方式的功能在此系统上不受支持或未正确初始化")
    else:
        try:
            start_menu = backend.start_menu_programs_path()
        except (SyncLinkError, OSError) as exc:
            warning_print(f"无法获取开始菜单路径以移除快捷方式: {exc}。将仅尝试移除配置记录。")
        else:
            try:
                backend.remove(link_name, start_menu, info)
            except (SyncLinkError, OSError) as exc:
                removal_error = exc
                warning_print(f"移除快捷方式文件时出错: {exc}。仍将尝试移除配置记录。")

    try:
        removed = cfg.remove_link(link_name)
    except ConfigError as exc:
        if removal_error is not None:
            raise LinkError(
                f"移除快捷方式文件失败 ({removal_error}) 并且移除配置记录也失败: {exc}"
            ) from exc
        raise LinkError(f"快捷方式文件已处理，但从配置中移除 '{link_name}' 失败: {exc}") from exc

    if not removed and removal_error is None:
        warning_print(
            f"尝试移除链接 '{link_name}'，但配置中似乎已不存在（尽管物理移除已尝试/成功）。"
        )
    if removal_error is not None:
        raise LinkError(f"移除快捷方式文件失败: {removal_error} (配置记录已移除)") from removal_error


def relink_link_or_shortcut(link_name: str) -> None:
    """Check and repair the named link, choosing symlink or shortcut handling."""
    try:
        cfg = get_config()
    except ConfigError as exc:
        raise LinkError(f"加载配置失败: {exc}") from exc

    info = cfg.get_link(link_name)
    if info is None:
        raise LinkError(f"链接 '{link_name}' 未在配置中找到")

    if info.shortcut:
        backend = _backend
        if backend is None:
            raise LinkError("重新链接快捷方式的功能在此系统上不受支持或未正确初始化")
        try:
            start_menu = backend.start_menu_programs_path()
        except (SyncLinkError, OSError) as exc:
            raise LinkError(f"无法获取开始菜单路径以重新链接快捷方式: {exc}") from exc
        try:
            backend.relink(link_name, start_menu, info)
        except (SyncLinkError, OSError) as exc:
            raise LinkError(f"重新链接快捷方式 '{link_name}' 失败: {exc}") from exc
    else:
        try:
            relink_symbolic_link(link_name)
        except SyncLinkError as exc:
            raise LinkError(f"重新链接符号链接 '{link_name}' 失败: {exc}") from exc