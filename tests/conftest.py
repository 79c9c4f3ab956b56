# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

import os
import sys
from pathlib import Path

import pytest

from scriptloader.compiler import helper as helper_module
from scriptloader.host.platform import AppLayout, InstallLayout

REPO_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture(autouse=True)
def _importable_from_children(monkeypatch):
    """Helper subprocesses must import scriptloader even from a deployed copy."""
    existing = os.environ.get("PYTHONPATH")
    paths = [str(REPO_ROOT)] + ([existing] if existing else [])
    monkeypatch.setenv("PYTHONPATH", os.pathsep.join(paths))


@pytest.fixture
def helper_path() -> Path:
    return Path(helper_module.__file__).resolve()


@pytest.fixture
def layouts(tmp_path):
    """An installation root and an application data path, both empty."""
    install = InstallLayout(tmp_path / "GamePluginKit")
    app = AppLayout(tmp_path / "Game_Data")
    for directory in (install.core, install.plugins, install.tools, app.mods, app.managed):
        directory.mkdir(parents=True)
    return install, app


@pytest.fixture
def clean_modules():
    """Drop modules and sys.path entries added by loading a compiled library."""
    saved_modules = set(sys.modules)
    saved_path = list(sys.path)
    yield
    for name in set(sys.modules) - saved_modules:
        del sys.modules[name]
    sys.path[:] = saved_path

