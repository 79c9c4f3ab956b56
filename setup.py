# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

import os
import re
from pathlib import Path

from setuptools import find_packages, setup

THIS_DIR = os.path.realpath(os.path.dirname(__file__))
REPO_ROOT = Path(THIS_DIR)


def read_version() -> str:
    init = (REPO_ROOT / "scriptloader" / "__init__.py").read_text()
    match = re.search(r'^__version__ = "([^"]+)"', init, re.MULTILINE)
    if match is None:
        raise RuntimeError("Unable to find __version__ in scriptloader/__init__.py")
    return match.group(1)


setup(
    name="scriptloader",
    version=read_version(),
    description="Compile script plugins in an isolated helper process and load them into the host",
    license="Apache-2.0 WITH LLVM-exception",
    python_requires=">=3.10",
    packages=find_packages(include=["scriptloader", "scriptloader.*"]),
    # The compatibility shim ships next to the helper.
    package_data={"scriptloader.compiler": ["shims/*.pyz"]},
    install_requires=["dill"],
    extras_require={"test": ["pytest"]},
    entry_points={
        "console_scripts": [
            "scriptloader=scriptloader.__main__:main",
            "scriptloader-compiler=scriptloader.compiler.helper:main",
        ]
    },
)
