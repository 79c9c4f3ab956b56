# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

from scriptloader.host.discovery import discover_references, discover_sources, find_files
from scriptloader.host.platform import AppLayout, InstallLayout


def _touch(path):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("")
    return path


def test_find_files_is_recursive_and_sorted(tmp_path):
    b = _touch(tmp_path / "b.py")
    a = _touch(tmp_path / "nested" / "deeper" / "a.py")
    _touch(tmp_path / "notes.txt")
    (tmp_path / "dir.py").mkdir()
    assert find_files(tmp_path, "*.py") == sorted([a, b])


def test_missing_directory_is_skipped(tmp_path):
    assert find_files(tmp_path / "absent", "*.py") == []


def test_sources_mods_before_plugins(layouts):
    install, app = layouts
    plugin = _touch(install.plugins / "aaa.py")
    mod = _touch(app.mods / "zzz.py")
    assert discover_sources(install, app) == [mod, plugin]


def test_references_in_resolution_order(layouts):
    install, app = layouts
    core = _touch(install.core / "z_core.pyz")
    plugin = _touch(install.plugins / "y_plugin.pyz")
    mod = _touch(app.mods / "x_mod.pyz")
    managed = _touch(app.managed / "w_managed.pyz")
    _touch(app.managed / "source.py")
    assert discover_references(install, app) == [core, plugin, mod, managed]


def test_nothing_installed(tmp_path):
    install = InstallLayout(tmp_path / "missing-root")
    app = AppLayout(tmp_path / "missing-data")
    assert discover_sources(install, app) == []
    assert discover_references(install, app) == []
