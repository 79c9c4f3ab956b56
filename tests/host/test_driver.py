# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

import logging
import os
import zipfile

import pytest

from scriptloader.compiler.actions import Action
from scriptloader.host.driver import SessionDriver
from scriptloader.host.platform import MICRO_RUNTIME_TOKEN, HostInfo, HostPlatform
from scriptloader.host.symbols import MICRO_SYMBOL
from scriptloader.support.logging import get_logger

posix_only = pytest.mark.skipif(os.name == "nt", reason="Needs inheritable pipe descriptors")

LOGGER_NAME = "tests.driver"


def _host(micro=False, version="2019.4.1f1"):
    return HostInfo(
        version=version,
        platform=HostPlatform.LINUX,
        runtime_key_token=MICRO_RUNTIME_TOKEN if micro else None,
    )


def _driver(layouts, helper_path, **kwargs):
    install, app = layouts
    return SessionDriver(
        kwargs.pop("host", _host()),
        install,
        app,
        helper_path=helper_path,
        logger=get_logger(LOGGER_NAME),
        ready_timeout=30,
        **kwargs,
    )


def _write(path, text=""):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


def _archive(path, module, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr(f"{module}.py", text)
    return path


def test_plan_orders_symbols_sources_references(layouts, helper_path):
    install, app = layouts
    plugin = _write(install.plugins / "plugin.py")
    mod = _write(app.mods / "mod.py")
    core = _archive(install.core / "core.pyz", "core", "")
    managed = _archive(app.managed / "managed.pyz", "managed", "")

    plan = _driver(layouts, helper_path).plan()
    kinds = [action for action, _ in plan]
    first_source = kinds.index(Action.ADD_SOURCE_FILE)
    first_reference = kinds.index(Action.ADD_REFERENCE)

    assert set(kinds[:first_source]) == {Action.ADD_PREPROCESSOR_SYMBOL}
    assert first_source < first_reference
    assert plan[first_source:] == [
        (Action.ADD_SOURCE_FILE, (str(mod),)),
        (Action.ADD_SOURCE_FILE, (str(plugin),)),
        (Action.ADD_REFERENCE, (str(core),)),
        (Action.ADD_REFERENCE, (str(managed),)),
    ]
    assert Action.ENABLE_COMPATIBILITY_SHIM not in kinds
    assert (Action.ADD_PREPROCESSOR_SYMBOL, (MICRO_SYMBOL,)) not in plan


def test_plan_for_micro_runtime(layouts, helper_path):
    install, _ = layouts
    _write(install.plugins / "plugin.py")
    plan = _driver(layouts, helper_path, host=_host(micro=True)).plan()
    kinds = [action for action, _ in plan]

    shim = kinds.index(Action.ENABLE_COMPATIBILITY_SHIM)
    micro = plan.index((Action.ADD_PREPROCESSOR_SYMBOL, (MICRO_SYMBOL,)))
    assert shim < kinds.index(Action.ADD_SOURCE_FILE)
    assert micro < kinds.index(Action.ADD_SOURCE_FILE)
    assert kinds.count(Action.ENABLE_COMPATIBILITY_SHIM) == 1


def test_empty_plan_is_only_symbols(layouts, helper_path):
    plan = _driver(layouts, helper_path).plan()
    assert plan
    assert {action for action, _ in plan} == {Action.ADD_PREPROCESSOR_SYMBOL}


@posix_only
def test_run_loads_compiled_plugins(layouts, helper_path, clean_modules):
    install, app = layouts
    _archive(install.core / "corelib.pyz", "corelib", "BASE = 40\n")
    _write(
        app.mods / "plugin.py",
        "import corelib\n"
        "#if UNITY_2019_1_OR_NEWER && UNITY_STANDALONE_LINUX\n"
        "VALUE = corelib.BASE + 2\n"
        "#else\n"
        "VALUE = 0\n"
        "#endif\n",
    )
    library = _driver(layouts, helper_path).run()
    assert library is not None
    assert library.modules["plugin"].VALUE == 42


@posix_only
def test_run_with_nothing_to_compile(layouts, helper_path, clean_modules):
    library = _driver(layouts, helper_path).run()
    assert library is not None
    assert library.modules == {}


@posix_only
def test_older_host_takes_other_branch(layouts, helper_path, clean_modules):
    _, app = layouts
    _write(
        app.mods / "plugin.py",
        "#if UNITY_2019_1_OR_NEWER\nVALUE = 'new'\n#else\nVALUE = 'old'\n#endif\n",
    )
    library = _driver(layouts, helper_path, host=_host(version="2018.4.2f1")).run()
    assert library.modules["plugin"].VALUE == "old"


@posix_only
def test_micro_runtime_plugins_use_the_shim(layouts, helper_path, clean_modules):
    _, app = layouts
    _write(
        app.mods / "legacy.py",
        "#if MICRO_MSCORLIB_BUILD\n"
        "from legacy_runtime import Hashtable\n"
        "#else\n"
        "Hashtable = None\n"
        "#endif\n",
    )
    driver = _driver(layouts, helper_path, host=_host(micro=True))
    library = driver.run()
    assert library is not None
    assert library.modules["legacy"].Hashtable is dict


@posix_only
def test_failed_compile_is_logged(layouts, helper_path, caplog):
    _, app = layouts
    broken = _write(app.mods / "broken.py", "def broken(:\n")
    loaded = []
    driver = _driver(layouts, helper_path, loader=loaded.append)

    with caplog.at_level(logging.ERROR, logger="scriptloader"):
        assert driver.run() is None

    assert loaded == []
    messages = [r.getMessage() for r in caplog.records if r.name.endswith(LOGGER_NAME)]
    assert messages[0] == "Compilation of script plugins failed."
    assert len(messages) == 2
    assert messages[1].startswith(str(broken))


def test_launch_failure_is_logged(layouts, tmp_path, caplog):
    driver = _driver(layouts, tmp_path / "absent.py")
    with caplog.at_level(logging.ERROR, logger="scriptloader"):
        assert driver.compile() is None
    assert "Unable to start the script compiler" in caplog.text


@pytest.mark.parametrize("version", ["2020.1.0a1", "beta"])
def test_unparseable_host_version_is_logged(layouts, tmp_path, caplog, version):
    driver = _driver(layouts, tmp_path / "absent.py", host=_host(version=version))
    with caplog.at_level(logging.ERROR, logger="scriptloader"):
        assert driver.run() is None
    assert "Unable to prepare the script compiler session" in caplog.text
