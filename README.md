# synclink

synclink keeps application settings and other files inside one sync folder
(for example a folder watched by a cloud drive or a backup tool) without the
applications noticing.

For each file or folder you hand it, synclink moves the data into the sync
folder and creates a symbolic link at the original place that points to the
new location. Every managed link is recorded in a `config.json`, so links can
be listed, repaired after moving to a new machine, or undone.

Messages printed by the program are in Chinese.

## Installation

```
pip install .
```

This installs the `synclink` command.

## Where the configuration lives

By default `config.json` is kept in the directory of the program that was
started (the directory of `sys.argv[0]`). When it does not exist, a default
file is created on first use. An empty or malformed file is reported as an
error; a file with a different `version` is loaded with a warning.

## First steps

Choose the folder that holds the synced data:

```
synclink config set default_sync_path D:\MySyncFolder
synclink config get default_sync_path
```

`set` stores the absolute form of the path. The attribute name and the
`get`/`set` action are case-insensitive; `default_sync_path` is the only
supported attribute.

## Commands

Link a file or folder. Files go to `<sync folder>/files/<name>`, folders to
`<sync folder>/<name>`. The name defaults to the last path element (without a
trailing `.exe`, in any case):

```
synclink link C:\Users\me\AppData\Roaming\MyApp\config.json
synclink link D:\PortableApps\my-app -n MyPortableApp
synclink link ~/.config/myapp -s /mnt/backup/sync
```

Options:

- `-n`, `--name` – the name of the link
- `-s`, `--sync-path` – the sync folder to use instead of `default_sync_path`
- `--shortcut` – create a Start Menu shortcut instead of a symbolic link
  (see "What synclink does not do" below)

Moves fall back to copy-and-delete when source and destination are on
different devices.

Show every managed link as a table, ordered by name:

```
synclink list
```

Check a link and recreate it if it is missing or points elsewhere; `*`
checks all of them (in parallel) and prints a summary:

```
synclink relink MyPortableApp
synclink relink "*"
```

Remove a link: the symbolic link is deleted, the data is moved back to its
original place and the record is dropped. `*` removes every managed link and
prints a summary:

```
synclink unlink MyPortableApp
synclink unlink "*"
```

Errors are printed in red to standard error and the command exits with
status 1; warnings are printed in yellow.

## Safety

- A link name that is already recorded is refused.
- When a folder's place in the sync folder is already taken, nothing is moved.
- If creating the symbolic link fails, the data is moved back.
- `relink` refuses to touch a path that exists but is not a symbolic link.
- When unlinking, data is never moved over a non-empty file or folder that
  has taken the link's place; the record is removed and you are asked to
  sort it out by hand.

## Using it from Python

The modules can be used directly:

- `synclink.config` – `load_config(path)`, `get_config()`, `save_config()`
  and the `Config`, `Settings` and `LinkInfo` dataclasses.
- `synclink.link` – `create_link_or_shortcut`, `remove_link_or_shortcut`,
  `relink_link_or_shortcut` and the symbolic-link functions they use.
- `synclink.util` – filesystem helpers such as `move_file_or_dir`,
  `copy_dir` and `get_default_link_name`.

Failures raise `synclink.util.SyncLinkError` or one of its subclasses
(`ConfigError`, `LinkError`).

## What synclink does not do

synclink ships no shortcut support of its own. Creating, removing or
relinking a Start Menu shortcut needs a `synclink.link.ShortcutBackend`
implementation installed with `set_shortcut_backend()`; none is included, so
`synclink link --shortcut` reports that shortcuts are not supported, and
removing a shortcut entry only drops its record from the configuration.