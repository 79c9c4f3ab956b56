# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""The terminal result frame written by the helper after `COMPILE`.

Layout:
  success: [bool true][int32 length][length bytes of library image]
  failure: [bool false][int32 count][count length-prefixed strings]
"""

import io
from dataclasses import dataclass, field

from scriptloader.compiler.protocol import (
    ProtocolError,
    read_bool,
    read_bytes,
    read_int32,
    read_string,
    write_bool,
    write_bytes,
    write_int32,
    write_string,
)


@dataclass
class CompileResult:
    """Either a compiled library image or the diagnostics explaining why not."""

    success: bool
    payload: bytes = b""
    diagnostics: list[str] = field(default_factory=list)

    @classmethod
    def succeeded(cls, payload: bytes) -> "CompileResult":
        return cls(success=True, payload=payload)

    @classmethod
    def failed(cls, diagnostics: list[str]) -> "CompileResult":
        return cls(success=False, diagnostics=list(diagnostics))


def write_result(pipe, result: CompileResult) -> None:
    """Write *result* as one frame and flush it.

    The frame is assembled in memory first so the peer never observes a
    partially written result.
    """
    buffer = io.BytesIO()
    write_bool(buffer, result.success)
    if result.success:
        write_bytes(buffer, result.payload)
    else:
        write_int32(buffer, len(result.diagnostics))
        for message in result.diagnostics:
            write_string(buffer, message)
    pipe.write(buffer.getvalue())
    pipe.flush()


def read_result(pipe) -> CompileResult:
    """Read a result frame from *pipe*.

    Any end of stream, including one before the first byte, is a
    `ProtocolError`: the result is owed after `COMPILE`.
    """
    try:
        success = read_bool(pipe)
        if success:
            return CompileResult.succeeded(read_bytes(pipe))
        count = read_int32(pipe)
        if count < 0:
            raise ProtocolError(f"Negative diagnostic count: {count}")
        return CompileResult.failed([read_string(pipe) for _ in range(count)])
    except EOFError as e:
        raise ProtocolError(f"Helper closed the stream before the result: {e}") from e
