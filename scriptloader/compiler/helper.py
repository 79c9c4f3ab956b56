# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""
Script compiler helper process.

Reads actions from stdin and writes the single compile result to stdout.
It runs as a standalone process so that a compiler failure cannot take
the host down with it. Anything that is not a protocol frame goes to
stderr.

Exit codes: 0 after FINISH, 1 if the host closed stdin without FINISH,
2 on a protocol violation or a second COMPILE.
"""

import argparse
import os
import sys
from pathlib import Path

if __name__ == "__main__":
    # Allow running this file directly from a source checkout.
    _package_root = Path(__file__).resolve().parents[2]
    if (_package_root / "scriptloader").is_dir() and str(_package_root) not in sys.path:
        sys.path.append(str(_package_root))

from scriptloader.compiler.dispatcher import serve
from scriptloader.compiler.protocol import ProtocolError
from scriptloader.compiler.session import (
    DEFAULT_LIBRARY_NAME,
    CompilerSession,
    SessionAlreadyCompiledError,
)
from scriptloader.support.logging import configure_logging, get_logger

logger = get_logger("scriptloader.compiler.helper")

SHIM_DIR = "shims"
SHIM_NAME = "legacy_runtime.pyz"
READY_BYTE = b"\x01"


def bundled_shim_path() -> Path:
    """The compatibility shim shipped next to this file.

    Resolved from the helper's own location, never the working directory,
    because the host starts the helper from wherever it happens to be.
    """
    return Path(__file__).resolve().parent / SHIM_DIR / SHIM_NAME


def _signal_ready(fd: int) -> None:
    try:
        os.write(fd, READY_BYTE)
    finally:
        os.close(fd)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Script plugin compiler helper")
    parser.add_argument(
        "--ready-fd",
        type=int,
        default=None,
        help="Inherited file descriptor to write one byte to once stdin is being read",
    )
    parser.add_argument(
        "--name",
        default=DEFAULT_LIBRARY_NAME,
        help="Name of the compiled library",
    )
    args = parser.parse_args(argv)

    reader = sys.stdin.buffer
    writer = sys.stdout.buffer
    # Keep stray prints from corrupting the protocol stream.
    sys.stdout = sys.stderr
    configure_logging(stream=sys.stderr)

    session = CompilerSession(name=args.name, shim_path=bundled_shim_path())
    if args.ready_fd is not None:
        _signal_ready(args.ready_fd)

    try:
        serve(session, reader, writer)
    except EOFError:
        logger.warning("Host closed the stream without sending FINISH")
        return 1
    except (ProtocolError, SessionAlreadyCompiledError) as e:
        logger.error("Stopping compiler helper: %s", e)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
