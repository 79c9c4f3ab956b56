# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Environment-driven configuration.

SCRIPTLOADER_HOME           installation root (default: per-user app data / GamePluginKit)
SCRIPTLOADER_HELPER         explicit path to the compiler helper
SCRIPTLOADER_READY_TIMEOUT  seconds to wait for the helper to accept input (default 30)
SCRIPTLOADER_LOG_LEVEL      level name for the scriptloader loggers (default WARNING)
"""

import os
import sys
from pathlib import Path

PRODUCT_FOLDER = "GamePluginKit"
DEFAULT_READY_TIMEOUT = 30.0


def local_app_data() -> Path:
    """The per-user application data directory of the current platform."""
    if sys.platform.startswith("win"):
        local = os.environ.get("LOCALAPPDATA")
        return Path(local) if local else Path.home() / "AppData" / "Local"
    xdg = os.environ.get("XDG_DATA_HOME")
    return Path(xdg) if xdg else Path.home() / ".local" / "share"


def install_root() -> Path:
    override = os.environ.get("SCRIPTLOADER_HOME")
    if override:
        return Path(override)
    return local_app_data() / PRODUCT_FOLDER


def helper_override() -> Path | None:
    override = os.environ.get("SCRIPTLOADER_HELPER")
    return Path(override) if override else None


def ready_timeout() -> float:
    value = os.environ.get("SCRIPTLOADER_READY_TIMEOUT")
    if not value:
        return DEFAULT_READY_TIMEOUT
    try:
        return float(value)
    except ValueError:
        raise ValueError(
            f"SCRIPTLOADER_READY_TIMEOUT must be a number of seconds, got {value!r}"
        ) from None


def log_level() -> str:
    return os.environ.get("SCRIPTLOADER_LOG_LEVEL", "WARNING").upper()
