# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Preprocessor symbols derived from the host platform and version."""

import re

from scriptloader.host.platform import HostInfo, HostPlatform

BASELINE_SYMBOL = "UNITY_STANDALONE"
DEBUG_SYMBOL = "DEVELOPMENT_BUILD"
MICRO_SYMBOL = "MICRO_MSCORLIB_BUILD"

PLATFORM_SYMBOLS = {
    HostPlatform.WINDOWS: "UNITY_STANDALONE_WIN",
    HostPlatform.LINUX: "UNITY_STANDALONE_LINUX",
    HostPlatform.OSX: "UNITY_STANDALONE_OSX",
    HostPlatform.UNKNOWN: "UNITY_STANDALONE_UNKNOWN",
}

# (major, first minor, last minor) of every known release line.
RELEASE_LINES: tuple[tuple[int, int, int], ...] = (
    (5, 3, 6),
    (2017, 1, 9),
    (2018, 1, 9),
    (2019, 1, 9),
)

_VERSION_DELIMITERS = re.compile(r"[.bfp]")


def split_version(version: str) -> list[str]:
    """Split "2019.4.1f1" into ["2019", "4", "1", "1"]."""
    return _VERSION_DELIMITERS.split(version)


def parse_version(version: str) -> tuple[int, int, int, int]:
    parts = split_version(version)
    padded = (parts + ["0"] * 4)[:4]
    try:
        return tuple(int(p) for p in padded)
    except ValueError:
        raise ValueError(f"Unrecognised host version: {version!r}") from None


def version_symbols(version: str) -> list[str]:
    """UNITY_X, UNITY_X_Y and UNITY_X_Y_Z for the host version."""
    parts = split_version(version)
    return ["UNITY_" + "_".join(parts[:n]) for n in range(1, min(len(parts), 3) + 1)]


def or_newer_symbols(version: str) -> list[str]:
    """UNITY_M_m_OR_NEWER for every release line not newer than *version*."""
    current = parse_version(version)
    symbols = []
    for major, first, last in RELEASE_LINES:
        for minor in range(first, last + 1):
            # (M, m) sorts before any (M, m, patch, build), so an exact
            # release line match counts as "or newer".
            if (major, minor) > current:
                continue
            symbols.append(f"UNITY_{major}_{minor}_OR_NEWER")
    return symbols


def preprocessor_symbols(host: HostInfo) -> list[str]:
    """Every symbol the host defines for script sources, in send order."""
    parse_version(host.version)
    symbols = [BASELINE_SYMBOL, PLATFORM_SYMBOLS[host.platform]]
    if host.debug_build:
        symbols.append(DEBUG_SYMBOL)
    symbols.extend(version_symbols(host.version))
    symbols.extend(or_newer_symbols(host.version))
    return symbols
