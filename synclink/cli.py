"""Command-line interface: config, link, list, relink and unlink commands."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed

from tabulate import tabulate

from synclink.config import ConfigError, get_config, load_config
from synclink.link import (
    create_link_or_shortcut,
    relink_link_or_shortcut,
    remove_link_or_shortcut,
)
from synclink.util import (
    SyncLinkError,
    error_print,
    get_abs_path,
    get_default_link_name,
    path_exists,
)

_ROOT_DESCRIPTION = """Synclink 旨在帮助管理应用程序配置或其他文件/文件夹的同步。

它可以将指定的目标移动到统一的同步目录中，
并在原始位置创建符号链接（用于实际文件同步）或
在开始菜单创建快捷方式（用于快速访问），
从而简化跨设备或备份场景下的文件管理。"""

_CONFIG_DESCRIPTION = """管理 synclink 的配置。

你可以使用 'get' 来查看一个配置项的值，或者使用 'set' 来修改它。

支持的属性:
  default_sync_path: 默认的同步目录路径

示例:
  synclink config get default_sync_path
  synclink config set default_sync_path D:\\MySyncFolder"""

_LINK_DESCRIPTION = """将指定的 'target_path' (文件或文件夹) 移动到配置的同步目录下，
并在原始位置创建一个指向新位置的符号链接。这有助于将配置文件等纳入同步范围。

或者，使用 --shortcut 标志，可以在开始菜单中为 'target_path' 创建一个快捷方式。"""

_RELINK_DESCRIPTION = """检查指定名称（或使用 '*' 检查所有）的链接是否存在并且是预期的类型（符号链接或快捷方式）。
如果链接丢失或不正确，则尝试根据存储的配置信息重新创建它。"""

_UNLINK_DESCRIPTION = """根据名称移除一个由 synclink 管理的符号链接或快捷方式。

对于符号链接：删除原始位置的符号链接，把同步目录中的数据移回原位，并移除配置记录。
对于快捷方式：删除开始菜单中的快捷方式文件，并移除配置记录。

特别地，如果 link_name 是 '*'，则会尝试移除所有当前管理的链接和快捷方式。"""

_SUPPORTED_ATTRIBUTES = ("default_sync_path",)


def _check_config_args(args: Sequence[str]) -> None:
    if len(args) < 2:
        raise SyncLinkError("缺少参数。需要指定操作 (get/set) 和属性名称")
    action = args[0].lower()
    if action not in ("get", "set"):
        raise SyncLinkError(f"无效的操作 '{args[0]}'。只支持 'get' 或 'set'")
    if action == "set" and len(args) < 3:
        raise SyncLinkError("使用 'set' 操作时必须提供新值")
    if action == "get" and len(args) > 2:
        raise SyncLinkError("使用 'get' 操作时不需要提供额外的值")
    if action == "set" and len(args) > 3:
        raise SyncLinkError("使用 'set' 操作时提供了过多的参数")
    if args[1].lower() not in _SUPPORTED_ATTRIBUTES:
        raise SyncLinkError(f"不支持的配置属性: '{args[1]}'")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="synclink",
        description=_ROOT_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    commands = parser.add_subparsers(dest="command", metavar="<command>")

    config_parser = commands.add_parser(
        "config",
        help="获取或设置 synclink 的配置项",
        description=_CONFIG_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    config_parser.add_argument("args", nargs="*", metavar="<get|set> <属性> [新值]")
    config_parser.set_defaults(handler=lambda ns: cmd_config(*ns.args))

    link_parser = commands.add_parser(
        "link",
        help="移动目标路径到同步目录并创建符号链接，或创建快捷方式",
        description=_LINK_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    link_parser.add_argument("target_path")
    link_parser.add_argument(
        "-n", "--name", default="", help="指定链接的名称 (默认为目标路径的基本名称)"
    )
    link_parser.add_argument(
        "-s",
        "--sync-path",
        dest="sync_path",
        default="",
        help="指定同步目录的路径 (默认为配置中的 DefaultSyncPath)",
    )
    link_parser.add_argument(
        "--shortcut", action="store_true", help="创建开始菜单快捷方式而不是符号链接"
    )
    link_parser.set_defaults(
        handler=lambda ns: cmd_link(ns.target_path, ns.name, ns.sync_path, ns.shortcut)
    )

    list_parser = commands.add_parser(
        "list",
        help="列出所有 synclink 管理的链接",
        description="列出当前配置文件中记录的所有符号链接和快捷方式的详细信息。",
    )
    list_parser.set_defaults(handler=lambda ns: cmd_list())

    relink_parser = commands.add_parser(
        "relink",
        help="检查并重新链接已管理的符号链接或快捷方式",
        description=_RELINK_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    relink_parser.add_argument("link_name")
    relink_parser.set_defaults(handler=lambda ns: cmd_relink(ns.link_name))

    unlink_parser = commands.add_parser(
        "unlink",
        help="移除一个已管理的链接或快捷方式",
        description=_UNLINK_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    unlink_parser.add_argument("link_name")
    unlink_parser.set_defaults(handler=lambda ns: cmd_unlink(ns.link_name))

    return parser


def cmd_config(action: str, attribute: str, value: str | None = None) -> None:
    """Show or change a configuration attribute."""
    _check_config_args([action, attribute] + ([] if value is None else [value]))
    try:
        cfg = get_config()
    except ConfigError as exc:
        raise SyncLinkError(f"加载配置文件失败: {exc}") from exc

    if action.lower() == "get":
        print(f"default_sync_path: {cfg.settings.default_sync_path}")
        return

    try:
        cfg.set_default_sync_path(value)
    except SyncLinkError as exc:
        raise SyncLinkError(f"设置 default_sync_path 失败: {exc}") from exc
    print(f"成功将 default_sync_path 设置为: {value}")


def cmd_link(
    target_path: str, name: str | None, sync_path: str | None, shortcut: bool
) -> None:
    """Move a path into the sync directory and link it, or create a shortcut."""
    cfg = get_config()
    target = get_abs_path(target_path)
    if not path_exists(target):
        raise SyncLinkError(f"目标路径 '{target}' 不存在。")

    link_name = name or get_default_link_name(target)
    if cfg.get_link(link_name) is not None:
        raise SyncLinkError(
            f"链接名称 '{link_name}' 已存在，请使用不同的名称，"
            f"或先使用 'synclink unlink {link_name}' 删除现有链接。"
        )

    sync_base = sync_path
    if not sync_base:
        sync_base = cfg.settings.default_sync_path
        if not sync_base:
            raise SyncLinkError(
                "未指定同步路径 (-s)，且配置中未设置默认同步路径，"
                "请使用 'synclink config set default_sync_path <路径>' 设置。"
            )

    create_link_or_shortcut(target, link_name, sync_base, shortcut)


def cmd_list() -> None:
    """Print a table of all managed links."""
    try:
        cfg = get_config()
    except ConfigError as exc:
        raise SyncLinkError(f"加载配置失败: {exc}") from exc

    links = cfg.get_links()
    if not links:
        print("当前没有管理的链接。")
        return

    rows = []
    for name, info in sorted(links.items()):
        display_path = info.synced_path
        if info.shortcut:
            link_type = "快捷方式"
            if "Start Menu" in info.synced_path:
                display_path = "开始菜单"
        else:
            link_type = "符号链接"
        rows.append(
            [
                name,
                link_type,
                info.original_path,
                display_path,
                info.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            ]
        )

    print("\n当前管理的链接列表:")
    print(
        tabulate(
            rows,
            headers=["链接名称", "类型", "原始路径", "同步路径", "创建时间"],
            tablefmt="grid",
        )
    )
    print(f"\n总共管理 {len(links)} 个链接。")


def _relink_one(name: str) -> None:
    print(f"[+] 正在处理链接 '{name}'...")
    relink_link_or_shortcut(name)


def _relink_all() -> None:
    links = get_config().get_links()
    if not links:
        print("没有已管理的链接可供重新链接。")
        return

    print(f"开始检查并重新链接所有 {len(links)} 个已管理的链接...")
    successes = failures = 0
    with ThreadPoolExecutor() as pool:
        futures = {pool.submit(_relink_one, name): name for name in sorted(links)}
        for future in as_completed(futures):
            name = futures[future]
            exc = future.exception()
            if exc is not None:
                error_print(f"[-] 重新链接 '{name}' 失败: {exc}")
                failures += 1
            else:
                print(f"[-] 链接 '{name}' 重新链接成功或状态正常。")
                successes += 1

    print("\n重新链接操作完成。")
    print(f"总计：{len(links)} 个链接")
    print(f"成功：{successes} 个")
    print(f"失败：{failures} 个")


def cmd_relink(link_name: str) -> None:
    """Check and repair one link, or every link when given '*'."""
    if link_name == "*":
        _relink_all()
        return

    if get_config().get_link(link_name) is None:
        raise SyncLinkError(f"链接 '{link_name}' 未被 synclink 管理。")

    print(f"正在检查链接 '{link_name}'...")
    try:
        relink_link_or_shortcut(link_name)
    except SyncLinkError as exc:
        raise SyncLinkError(f"尝试重新链接 '{link_name}' 时出错: {exc}") from exc
    print(f"链接 '{link_name}' 检查完毕，状态正常或已成功重新链接。")


def cmd_unlink(link_name: str) -> None:
    """Remove one managed link, or every link when given '*'."""
    cfg = get_config()

    if link_name == "*":
        links = cfg.get_links()
        if not links:
            print("没有找到任何已管理的链接或快捷方式。")
            return
        successes = failures = 0
        for name in sorted(links):
            try:
                remove_link_or_shortcut(name)
            except SyncLinkError as exc:
                error_print(f"[-] 移除 '{name}' 失败: {exc}")
                failures += 1
            else:
                print(f"[-] 已移除 '{name}'")
                successes += 1
        print("\n移除链接操作完成。")
        print(f"总计：{len(links)} 个链接")
        print(f"成功：{successes} 个")
        print(f"失败：{failures} 个")
        return

    if cfg.get_link(link_name) is None:
        raise SyncLinkError(f"未在配置中找到名为 '{link_name}' 的链接或快捷方式")

    remove_link_or_shortcut(link_name)
    print(f"已成功移除 '{link_name}'")


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line; return the process exit status."""
    parser = build_parser()
    ns = parser.parse_args(argv)
    if ns.command is None:
        parser.print_help()
        return 0

    try:
        if ns.command == "config":
            _check_config_args(ns.args)
        try:
            load_config()
        except ConfigError as exc:
            raise SyncLinkError(f"加载配置文件失败: {exc}") from exc
        ns.handler(ns)
    except (SyncLinkError, OSError) as exc:
        error_print(str(exc))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())