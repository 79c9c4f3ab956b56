# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Host description and on-disk layout.

The installation root holds files shared by every application:

    <root>/Core/      core libraries
    <root>/Plugins/   installed plugins
    <root>/Tools/     the compiler helper

Each application additionally has its own data directory with `Mods/`
and `Managed/` subdirectories.
"""

import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from scriptloader.support.environment import install_root

# Public key token of the "micro" core runtime shipped by some older hosts.
MICRO_RUNTIME_TOKEN = "7cec85d7bea7798e"


class HostPlatform(Enum):
    WINDOWS = "windows"
    LINUX = "linux"
    OSX = "osx"
    UNKNOWN = "unknown"

    @classmethod
    def current(cls) -> "HostPlatform":
        if sys.platform.startswith("win"):
            return cls.WINDOWS
        if sys.platform.startswith("linux"):
            return cls.LINUX
        if sys.platform == "darwin":
            return cls.OSX
        return cls.UNKNOWN


def format_key_token(token: bytes | None) -> str | None:
    """Hex-encode a public key token; None for a missing or empty token."""
    if not token:
        return None
    return token.hex()


@dataclass(frozen=True)
class HostInfo:
    version: str
    platform: HostPlatform = field(default_factory=HostPlatform.current)
    debug_build: bool = False
    runtime_key_token: str | None = None

    @property
    def uses_micro_runtime(self) -> bool:
        return self.runtime_key_token == MICRO_RUNTIME_TOKEN


@dataclass(frozen=True)
class InstallLayout:
    root: Path

    @classmethod
    def default(cls) -> "InstallLayout":
        return cls(install_root())

    @property
    def core(self) -> Path:
        return self.root / "Core"

    @property
    def plugins(self) -> Path:
        return self.root / "Plugins"

    @property
    def tools(self) -> Path:
        return self.root / "Tools"


@dataclass(frozen=True)
class AppLayout:
    data_path: Path

    @property
    def mods(self) -> Path:
        return self.data_path / "Mods"

    @property
    def managed(self) -> Path:
        return self.data_path / "Managed"
