"""Filesystem helpers and coloured diagnostic output."""

from __future__ import annotations

import errno
import os
import shutil
import stat
import sys
from collections.abc import Iterator
from pathlib import Path

from termcolor import colored

CONFIG_FILE_NAME = "config.json"

_CHUNK_SIZE = 1024 * 1024
_ERROR_NOT_SAME_DEVICE = 17  # Windows error code for cross-volume moves


class SyncLinkError(Exception):
    """Raised when a synclink operation cannot be completed."""


def _emit(message: str, color: str) -> None:
    if not message.endswith("\n"):
        message += "\n"
    sys.stderr.write(colored(message, color))
    sys.stderr.flush()


def warning_print(message: str) -> None:
    """Write a warning to stderr in yellow."""
    _emit(message, "yellow")


def error_print(message: str) -> None:
    """Write an error to stderr in red."""
    _emit(message, "red")


def get_executable_dir() -> str:
    """Return the directory holding the running program."""
    program = sys.argv[0] if sys.argv and sys.argv[0] else sys.executable
    if not program:
        raise SyncLinkError("获取可执行文件路径失败: 无法确定程序位置")
    try:
        return str(Path(program).resolve().parent)
    except OSError as exc:
        raise SyncLinkError(f"获取可执行文件路径失败: {exc}") from exc


def get_config_path() -> str:
    """Return the absolute path of the configuration file next to the program."""
    return os.path.join(get_executable_dir(), CONFIG_FILE_NAME)


def _stat(path: str, follow_symlinks: bool = True) -> os.stat_result | None:
    try:
        return os.stat(path, follow_symlinks=follow_symlinks)
    except FileNotFoundError:
        return None


def path_exists(path: str) -> bool:
    """Return True if the path (following symlinks) exists."""
    try:
        return _stat(path) is not None
    except OSError as exc:
        raise SyncLinkError(f"检查路径 '{path}' 时出错: {exc}") from exc


def is_dir(path: str) -> bool:
    """Return True if the path is a directory; False if missing."""
    try:
        info = _stat(path)
    except OSError as exc:
        raise SyncLinkError(f"无法获取路径 '{path}' 的信息: {exc}") from exc
    return info is not None and stat.S_ISDIR(info.st_mode)


def is_file(path: str) -> bool:
    """Return True if the path is a regular file; False if missing."""
    try:
        info = _stat(path)
    except OSError as exc:
        raise SyncLinkError(f"无法获取路径 '{path}' 的信息: {exc}") from exc
    return info is not None and stat.S_ISREG(info.st_mode)


def is_symlink(path: str) -> bool:
    """Return True if the path itself is a symbolic link."""
    try:
        info = _stat(path, follow_symlinks=False)
    except OSError as exc:
        raise SyncLinkError(f"无法获取路径 '{path}' 的 Lstat 信息: {exc}") from exc
    return info is not None and stat.S_ISLNK(info.st_mode)


def ensure_dir_exists(dir_path: str) -> None:
    """Create the directory and its parents if they do not exist."""
    try:
        os.makedirs(dir_path, mode=0o755, exist_ok=True)
    except OSError as exc:
        raise SyncLinkError(f"创建目录 '{dir_path}' 失败: {exc}") from exc


def _is_cross_device(exc: OSError) -> bool:
    return exc.errno == errno.EXDEV or getattr(exc, "winerror", None) == _ERROR_NOT_SAME_DEVICE


def _remove_all(path: str) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    elif os.path.lexists(path):
        os.remove(path)


def move_file_or_dir(src: str, dst: str) -> None:
    """Move a file or directory, copying and deleting across devices."""
    try:
        os.replace(src, dst)
        return
    except OSError as exc:
        if not _is_cross_device(exc):
            raise SyncLinkError(f"移动 '{src}' 到 '{dst}' 失败: {exc}") from exc

    try:
        source_is_dir = is_dir(src)
    except SyncLinkError as exc:
        raise SyncLinkError(f"无法确定源路径 '{src}' 类型: {exc}") from exc

    if source_is_dir:
        try:
            copy_dir(src, dst)
        except SyncLinkError as exc:
            raise SyncLinkError(f"复制目录 '{src}' 到 '{dst}' 失败: {exc}") from exc
    else:
        try:
            copy_file(src, dst)
        except SyncLinkError as exc:
            raise SyncLinkError(f"复制文件 '{src}' 到 '{dst}' 失败: {exc}") from exc

    try:
        _remove_all(src)
    except OSError as exc:
        raise SyncLinkError(f"复制成功后删除源 '{src}' 失败: {exc}") from exc


def copy_file(src: str, dst: str) -> None:
    """Copy one file, keeping its permissions and overwriting the target."""
    dst_dir = os.path.dirname(dst) or "."
    try:
        ensure_dir_exists(dst_dir)
    except SyncLinkError as exc:
        raise SyncLinkError(f"无法创建目标目录 '{dst_dir}': {exc}") from exc

    try:
        source = open(src, "rb")
    except OSError as exc:
        raise SyncLinkError(f"无法打开源文件 '{src}': {exc}") from exc

    with source:
        try:
            source_info = os.fstat(source.fileno())
        except OSError as exc:
            raise SyncLinkError(f"无法获取源文件 '{src}' 的信息: {exc}") from exc
        mode = stat.S_IMODE(source_info.st_mode)

        try:
            fd = os.open(dst, os.O_RDWR | os.O_CREAT | os.O_TRUNC | getattr(os, "O_BINARY", 0), mode)
        except OSError as exc:
            raise SyncLinkError(f"无法创建目标文件 '{dst}': {exc}") from exc

        with os.fdopen(fd, "wb") as target:
            copied = 0
            try:
                for chunk in iter(lambda: source.read(_CHUNK_SIZE), b""):
                    target.write(chunk)
                    copied += len(chunk)
            except OSError as exc:
                raise SyncLinkError(f"复制文件内容从 '{src}' 到 '{dst}' 失败: {exc}") from exc

            if copied != source_info.st_size:
                target.close()
                try:
                    os.remove(dst)
                except OSError:
                    pass
                raise SyncLinkError(
                    f"复制字节数不匹配 ({copied} vs {source_info.st_size}) for '{src}' -> '{dst}'"
                )

            try:
                target.flush()
                os.fsync(target.fileno())
            except OSError as exc:
                warning_print(f"同步目标文件 '{dst}' 到磁盘时出错: {exc}")

    try:
        os.chmod(dst, mode)
    except OSError as exc:
        warning_print(f"设置目标文件 '{dst}' 权限失败: {exc}")


def _walk_sorted(root: str) -> Iterator[os.DirEntry]:
    """Yield entries below root depth-first, in lexical order."""
    with os.scandir(root) as it:
        entries = sorted(it, key=lambda e: e.name)
    for entry in entries:
        yield entry
        if entry.is_dir(follow_symlinks=False):
            yield from _walk_sorted(entry.path)


def _entry_type(entry: os.DirEntry) -> str:
    mode = entry.stat(follow_symlinks=False).st_mode
    return stat.filemode(mode)


def copy_dir(src: str, dst: str) -> None:
    """Recursively copy a directory; only directories and regular files are copied."""
    src = os.path.normpath(src)
    dst = os.path.normpath(dst)

    try:
        src_info = os.stat(src)
    except OSError as exc:
        raise SyncLinkError(f"无法获取源目录 '{src}' 信息: {exc}") from exc
    if not stat.S_ISDIR(src_info.st_mode):
        raise SyncLinkError(f"源路径 '{src}' 不是一个目录")

    try:
        os.makedirs(dst, mode=stat.S_IMODE(src_info.st_mode), exist_ok=True)
    except OSError as exc:
        raise SyncLinkError(f"无法创建目标目录 '{dst}': {exc}") from exc

    try:
        for entry in _walk_sorted(src):
            target = os.path.join(dst, os.path.relpath(entry.path, src))
            if entry.is_dir(follow_symlinks=False):
                mode = stat.S_IMODE(entry.stat(follow_symlinks=False).st_mode)
                try:
                    os.makedirs(target, mode=mode, exist_ok=True)
                except OSError as exc:
                    raise SyncLinkError(f"无法在目标位置创建目录 '{target}': {exc}") from exc
            elif entry.is_file(follow_symlinks=False):
                copy_file(entry.path, target)
            else:
                print(f"跳过非普通文件/目录: {entry.path} (类型: {_entry_type(entry)})")
    except OSError as exc:
        raise SyncLinkError(f"复制目录 '{src}' 到 '{dst}' 过程中失败: {exc}") from exc
    except SyncLinkError as exc:
        raise SyncLinkError(f"复制目录 '{src}' 到 '{dst}' 过程中失败: {exc}") from exc


def get_abs_path(p: str) -> str:
    """Return a cleaned absolute form of the path, resolved against the cwd."""
    if os.path.isabs(p):
        return os.path.normpath(p)
    try:
        return os.path.abspath(p)
    except OSError as exc:
        raise SyncLinkError(f"获取路径 '{p}' 的绝对路径失败: {exc}") from exc


def _base_name(p: str) -> str:
    if not p:
        return "."
    separators = os.sep + (os.altsep or "")
    stripped = p.rstrip(separators)
    if not stripped:
        return os.sep
    return os.path.basename(stripped)


def get_default_link_name(p: str) -> str:
    """Return the last path element, without a trailing '.exe' (any case)."""
    name = _base_name(p)
    if name.lower().endswith(".exe"):
        name = name[:-4]
    return name