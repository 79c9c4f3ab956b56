# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Finds script sources and reference archives on disk."""

from pathlib import Path

from scriptloader.host.platform import AppLayout, InstallLayout
from scriptloader.support.logging import get_logger

logger = get_logger(__name__)

SOURCE_PATTERN = "*.py"
REFERENCE_PATTERN = "*.pyz"


def find_files(directory: Path, pattern: str) -> list[Path]:
    """All files under *directory* matching *pattern*, recursively, sorted."""
    if not directory.is_dir():
        logger.debug("Skipping missing directory %s", directory)
        return []
    return sorted(p.absolute() for p in directory.rglob(pattern) if p.is_file())


def source_roots(install: InstallLayout, app: AppLayout) -> list[Path]:
    return [app.mods, install.plugins]


def reference_roots(install: InstallLayout, app: AppLayout) -> list[Path]:
    """Reference locations in resolution order."""
    return [install.core, install.plugins, app.mods, app.managed]


def discover_sources(install: InstallLayout, app: AppLayout) -> list[Path]:
    files: list[Path] = []
    for root in source_roots(install, app):
        files.extend(find_files(root, SOURCE_PATTERN))
    return files


def discover_references(install: InstallLayout, app: AppLayout) -> list[Path]:
    files: list[Path] = []
    for root in reference_roots(install, app):
        files.extend(find_files(root, REFERENCE_PATTERN))
    return files
