import os

import pytest

from synclink.config import LinkInfo, get_config, load_config
from synclink.link import (
    LinkError,
    ShortcutBackend,
    create_link_or_shortcut,
    create_symbolic_link,
    relink_link_or_shortcut,
    relink_symbolic_link,
    remove_link_or_shortcut,
    remove_symbolic_link,
    set_shortcut_backend,
)


class _FakeBackend(ShortcutBackend):
    def __init__(self, base):
        self.base = str(base)
        self.calls = []

    def create(self, target_path, link_name, start_menu_path_base):
        os.makedirs(start_menu_path_base, exist_ok=True)
        path = os.path.join(start_menu_path_base, link_name + ".lnk")
        with open(path, "w", encoding="utf-8") as handle:
            handle.write(target_path)
        self.calls.append(("create", link_name))
        return path

    def remove(self, link_name, start_menu_path_base, link_info):
        self.calls.append(("remove", link_name))
        path = os.path.join(start_menu_path_base, link_name + ".lnk")
        if os.path.exists(path):
            os.remove(path)

    def relink(self, link_name, start_menu_path_base, link_info):
        self.calls.append(("relink", link_name))
        self.create(link_info.original_path, link_name, start_menu_path_base)

    def start_menu_programs_path(self):
        return self.base


class _FailingRemoveBackend(_FakeBackend):
    def remove(self, link_name, start_menu_path_base, link_info):
        raise OSError("cannot remove")


@pytest.fixture
def env(tmp_path):
    load_config(str(tmp_path / "conf" / "config.json"))
    set_shortcut_backend(None)
    sync = tmp_path / "sync"
    work = tmp_path / "work"
    work.mkdir()
    yield tmp_path, str(sync), work
    set_shortcut_backend(None)


def _make_file(path, text="hello"):
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_create_file_symlink(env):
    tmp, sync, work = env
    target = _make_file(work / "notes.txt")
    create_symbolic_link(target, "notes", sync)

    synced = os.path.join(sync, "files", "notes")
    assert os.path.islink(target)
    assert os.readlink(target) == synced
    with open(synced, encoding="utf-8") as handle:
        assert handle.read() == "hello"
    info = get_config().get_link("notes")
    assert info.synced_path == synced
    assert info.original_path == target
    assert info.shortcut is False

    reloaded = load_config(str(tmp / "conf" / "config.json"))
    assert reloaded.get_link("notes").synced_path == synced


def test_create_dir_symlink(env):
    _, sync, work = env
    folder = work / "app"
    folder.mkdir()
    (folder / "a.txt").write_text("x", encoding="utf-8")
    create_symbolic_link(str(folder), "app", sync)

    synced = os.path.join(sync, "app")
    info = get_config().get_link("app")
    assert info.synced_path == synced
    assert info.original_path == str(folder)
    assert info.shortcut is False
    assert os.path.islink(str(folder))
    assert os.path.isfile(os.path.join(synced, "a.txt"))
    assert os.path.isfile(os.path.join(str(folder), "a.txt"))


def test_create_missing_target_raises(env):
    _, sync, work = env
    with pytest.raises(LinkError):
        create_symbolic_link(str(work / "missing"), "m", sync)
    assert get_config().get_link("m") is None


def test_create_duplicate_name_raises(env):
    _, sync, work = env
    create_symbolic_link(_make_file(work / "a.txt"), "dup", sync)
    other = _make_file(work / "b.txt")
    with pytest.raises(LinkError):
        create_symbolic_link(other, "dup", sync)
    assert not os.path.islink(other)


def test_create_dir_when_sync_target_exists(env):
    _, sync, work = env
    os.makedirs(os.path.join(sync, "app"))
    folder = work / "app"
    folder.mkdir()
    with pytest.raises(LinkError):
        create_symbolic_link(str(folder), "app", sync)
    assert os.path.isdir(str(folder)) and not os.path.islink(str(folder))


def test_remove_restores_data(env):
    _, sync, work = env
    target = _make_file(work / "notes.txt", "content")
    create_symbolic_link(target, "notes", sync)
    remove_symbolic_link("notes")

    assert not os.path.islink(target)
    with open(target, encoding="utf-8") as handle:
        assert handle.read() == "content"
    assert not os.path.exists(os.path.join(sync, "files", "notes"))
    assert get_config().get_link("notes") is None


def test_remove_unknown_raises(env):
    with pytest.raises(LinkError):
        remove_symbolic_link("nope")


def test_remove_with_nonempty_original_keeps_synced(env):
    _, sync, work = env
    target = _make_file(work / "notes.txt", "data")
    create_symbolic_link(target, "notes", sync)
    os.remove(target)
    _make_file(work / "notes.txt", "user file")

    with pytest.raises(LinkError):
        remove_symbolic_link("notes")
    assert get_config().get_link("notes") is None
    assert os.path.isfile(os.path.join(sync, "files", "notes"))
    with open(target, encoding="utf-8") as handle:
        assert handle.read() == "user file"


def test_relink_recreates_missing_link(env):
    _, sync, work = env
    target = _make_file(work / "notes.txt")
    create_symbolic_link(target, "notes", sync)
    os.remove(target)
    relink_symbolic_link("notes")
    assert os.readlink(target) == os.path.join(sync, "files", "notes")


def test_relink_fixes_wrong_target(env):
    _, sync, work = env
    target = _make_file(work / "notes.txt")
    create_symbolic_link(target, "notes", sync)
    other = _make_file(work / "other.txt")
    os.remove(target)
    os.symlink(other, target)
    relink_link_or_shortcut("notes")
    assert os.readlink(target) == os.path.join(sync, "files", "notes")


def test_relink_conflict_raises(env):
    _, sync, work = env
    target = _make_file(work / "notes.txt")
    create_symbolic_link(target, "notes", sync)
    os.remove(target)
    _make_file(work / "notes.txt", "real")
    with pytest.raises(LinkError):
        relink_symbolic_link("notes")
    assert not os.path.islink(target)


def test_relink_missing_synced_raises(env):
    _, sync, work = env
    target = _make_file(work / "notes.txt")
    create_symbolic_link(target, "notes", sync)
    os.remove(target)
    os.remove(os.path.join(sync, "files", "notes"))
    with pytest.raises(LinkError):
        relink_symbolic_link("notes")
    assert not os.path.lexists(target)


def test_remove_link_or_shortcut_symlink(env):
    _, sync, work = env
    target = _make_file(work / "tool.txt", "t")
    create_link_or_shortcut(target, "tool", sync, False)
    remove_link_or_shortcut("tool")
    assert not os.path.islink(target)
    assert get_config().get_links() == {}


def test_shortcut_without_backend_raises(env):
    _, sync, work = env
    target = _make_file(work / "tool.exe")
    with pytest.raises(LinkError):
        create_link_or_shortcut(target, "tool", sync, True)
    assert get_config().get_link("tool") is None


def test_shortcut_create_remove_with_backend(env):
    tmp, sync, work = env
    backend = _FakeBackend(tmp / "menu")
    set_shortcut_backend(backend)
    target = _make_file(work / "tool.exe")

    create_link_or_shortcut(target, "tool", sync, True)
    info = get_config().get_link("tool")
    expected = os.path.join(str(tmp / "menu"), "tool.lnk")
    assert info.shortcut is True
    assert info.original_path == target
    assert info.synced_path == expected
    assert os.path.isfile(expected)
    assert not os.path.islink(target)

    remove_link_or_shortcut("tool")
    assert not os.path.exists(expected)
    assert get_config().get_link("tool") is None
    assert backend.calls == [("create", "tool"), ("remove", "tool")]


def test_shortcut_relink_uses_backend(env):
    tmp, sync, work = env
    backend = _FakeBackend(tmp / "menu")
    set_shortcut_backend(backend)
    target = _make_file(work / "tool.exe")
    create_link_or_shortcut(target, "tool", sync, True)
    os.remove(os.path.join(str(tmp / "menu"), "tool.lnk"))

    relink_link_or_shortcut("tool")
    assert backend.calls[-1] == ("relink", "tool")
    assert os.path.isfile(os.path.join(str(tmp / "menu"), "tool.lnk"))


def test_shortcut_remove_failure_still_drops_entry(env):
    tmp, sync, work = env
    set_shortcut_backend(_FailingRemoveBackend(tmp / "menu"))
    target = _make_file(work / "tool.exe")
    create_link_or_shortcut(target, "tool", sync, True)
    with pytest.raises(LinkError):
        remove_link_or_shortcut("tool")
    assert get_config().get_link("tool") is None


def test_shortcut_entry_without_backend(env):
    _, _, work = env
    get_config().add_link(
        "tool", LinkInfo(shortcut=True, original_path=str(work / "tool.exe"), synced_path="x.lnk")
    )
    with pytest.raises(LinkError):
        relink_link_or_shortcut("tool")
    with pytest.raises(LinkError):
        remove_link_or_shortcut("tool")
    assert get_config().get_link("tool") is None


def test_symlink_ops_reject_shortcut_entries(env):
    get_config().add_link("sc", LinkInfo(shortcut=True, original_path="/a", synced_path="/b"))
    with pytest.raises(LinkError):
        remove_symbolic_link("sc")
    with pytest.raises(LinkError):
        relink_symbolic_link("sc")
    assert get_config().get_link("sc") is not None and get_config().get_link("sc").shortcut


def test_relink_unknown_raises(env):
    with pytest.raises(LinkError):
        relink_link_or_shortcut("ghost")
    with pytest.raises(LinkError):
        remove_link_or_shortcut("ghost")
    assert get_config().get_links() == {}