# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

import os

import pytest

from scriptloader import __main__ as cli
from scriptloader.host.supervisor import HELPER_DIR

posix_only = pytest.mark.skipif(os.name == "nt", reason="Needs inheritable pipe descriptors")


@pytest.fixture(autouse=True)
def _isolated_cli(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)
    monkeypatch.delenv("SCRIPTLOADER_HELPER", raising=False)


def _args(layouts, *extra):
    install, app = layouts
    return [
        "--root",
        str(install.root),
        "--data-path",
        str(app.data_path),
        "--version",
        "2019.4.1f1",
        "--platform",
        "linux",
        *extra,
    ]


@posix_only
def test_compile_with_deployed_helper(layouts, capsys):
    install, app = layouts
    (app.mods / "plugin.py").write_text("VALUE = 1\n")
    assert cli.main(_args(layouts, "--deploy-helper")) == 0
    assert (install.tools / HELPER_DIR / "scriptc.py").is_file()
    assert capsys.readouterr().out.startswith("Compiled ")


@posix_only
def test_compile_failure_prints_diagnostics(layouts, helper_path, capsys):
    _, app = layouts
    broken = app.mods / "broken.py"
    broken.write_text("def broken(:\n")
    assert cli.main(_args(layouts, "--helper", str(helper_path))) == 1
    assert capsys.readouterr().err.startswith(str(broken))


@posix_only
def test_load(layouts, helper_path, capsys, clean_modules):
    _, app = layouts
    (app.mods / "plugin.py").write_text("VALUE = 1\n")
    assert cli.main(_args(layouts, "--helper", str(helper_path), "--load")) == 0
    assert capsys.readouterr().out.strip() == "Loaded ScriptLibrary: plugin"


def test_missing_helper_fails(layouts, tmp_path):
    assert cli.main(_args(layouts, "--helper", str(tmp_path / "absent.py"))) == 1


def test_version_is_required(layouts):
    with pytest.raises(SystemExit):
        cli.main(["--data-path", str(layouts[1].data_path)])


def test_deploy_failure_is_reported(layouts, monkeypatch, capsys):
    monkeypatch.setattr("shutil.which", lambda name: None)
    argv = _args(layouts, "--platform", "windows", "--deploy-helper")
    assert cli.main(argv) == 1
    assert "Unable to deploy the script compiler" in capsys.readouterr().err
