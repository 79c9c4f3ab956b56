# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Primitive value codec shared by the host and the compiler helper.

Wire format (same in both directions):
  int32   [4-byte little-endian signed integer]
  bool    [1 byte, 0 = false, anything else = true]
  string  [int32 byte count][UTF-8 bytes]
  bytes   [int32 byte count][raw bytes]

Little-endian is fixed rather than native so that a helper built for a
different runtime still agrees with the host on every frame.

This module only depends on the stdlib `struct` module, so it can be
imported from the helper without pulling in any host dependencies.
"""

import struct

_INT32_FMT = "<i"
_INT32_SIZE = struct.calcsize(_INT32_FMT)


class ProtocolError(ConnectionError):
    """The stream no longer holds a well-formed frame.

    There is no resynchronization point in the stream, so the only
    recovery is to stop reading and tear the connection down.
    """


def _read_exact(pipe, size: int, what: str) -> bytes:
    """Read exactly *size* bytes from *pipe*.

    Raises `EOFError` if the stream ends before the first byte and
    `ProtocolError` if it ends part way through.
    """
    chunks = []
    remaining = size
    while remaining > 0:
        chunk = pipe.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    data = b"".join(chunks)
    if size > 0 and len(data) == 0:
        raise EOFError(f"Peer closed the connection before {what}")
    if len(data) < size:
        raise ProtocolError(
            f"Truncated {what}: expected {size} bytes, got {len(data)}"
        )
    return data


def write_int32(pipe, value: int) -> None:
    pipe.write(struct.pack(_INT32_FMT, value))


def read_int32(pipe) -> int:
    (value,) = struct.unpack(_INT32_FMT, _read_exact(pipe, _INT32_SIZE, "int32"))
    return value


def write_bool(pipe, value: bool) -> None:
    pipe.write(b"\x01" if value else b"\x00")


def read_bool(pipe) -> bool:
    return _read_exact(pipe, 1, "boolean") != b"\x00"


def _read_length(pipe, what: str) -> int:
    length = read_int32(pipe)
    if length < 0:
        raise ProtocolError(f"Negative {what} length: {length}")
    return length


def write_bytes(pipe, data: bytes) -> None:
    """Write a length-prefixed byte blob to *pipe*."""
    write_int32(pipe, len(data))
    pipe.write(data)


def read_bytes(pipe) -> bytes:
    """Read a length-prefixed byte blob from *pipe*.

    An end of stream after the length prefix is a truncation, not a
    clean shutdown, and raises `ProtocolError`.
    """
    length = _read_length(pipe, "blob")
    try:
        return _read_exact(pipe, length, "blob payload")
    except EOFError as e:
        raise ProtocolError(str(e)) from e


def write_string(pipe, value: str) -> None:
    """Write a length-prefixed UTF-8 string to *pipe*."""
    write_bytes(pipe, value.encode("utf-8"))


def read_string(pipe) -> str:
    """Read a length-prefixed UTF-8 string from *pipe*."""
    length = _read_length(pipe, "string")
    try:
        data = _read_exact(pipe, length, "string payload")
    except EOFError as e:
        raise ProtocolError(str(e)) from e
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ProtocolError(f"String payload is not valid UTF-8: {e}") from e
