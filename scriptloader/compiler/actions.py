# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""The closed set of actions the host sends to the compiler helper.

A frame is one int32 action code followed by that action's payload.
The payload shapes below are part of the wire contract: a handler that
reads more or fewer fields than the sender wrote desynchronizes every
frame that follows.
"""

from enum import IntEnum

from scriptloader.compiler.protocol import (
    ProtocolError,
    read_int32,
    write_int32,
    write_string,
)


class Action(IntEnum):
    ADD_PREPROCESSOR_SYMBOL = 0
    ADD_SOURCE_FILE = 1
    ADD_REFERENCE = 2
    ENABLE_COMPATIBILITY_SHIM = 3
    COMPILE = 4
    FINISH = 5


# Payload field types, in wire order, for every action.
ACTION_PAYLOADS: dict[Action, tuple[type, ...]] = {
    Action.ADD_PREPROCESSOR_SYMBOL: (str,),
    Action.ADD_SOURCE_FILE: (str,),
    Action.ADD_REFERENCE: (str,),
    Action.ENABLE_COMPATIBILITY_SHIM: (),
    Action.COMPILE: (),
    Action.FINISH: (),
}

assert set(ACTION_PAYLOADS) == set(Action), "Every action needs a payload shape"


class UnknownActionError(ProtocolError):
    """An action code outside the vocabulary was read from the stream."""

    def __init__(self, code: int) -> None:
        super().__init__(f"Unknown action code: {code}")
        self.code = code


def write_action(pipe, action: Action, *payload: str) -> None:
    """Write one action frame (code and payload) to *pipe*.

    Does not flush; callers flush at the points where the peer is
    expected to act on what was written.
    """
    shape = ACTION_PAYLOADS[action]
    if len(payload) != len(shape) or not all(
        isinstance(value, kind) for value, kind in zip(payload, shape)
    ):
        raise ValueError(
            f"{action.name} expects payload {[t.__name__ for t in shape]}, "
            f"got {[type(v).__name__ for v in payload]}"
        )
    write_int32(pipe, action)
    for value in payload:
        write_string(pipe, value)


def read_action(pipe) -> Action:
    """Read the next action code from *pipe*.

    Raises `EOFError` if the peer closed the stream between frames and
    `UnknownActionError` for a code outside the vocabulary. Nothing
    beyond the code itself is consumed in either case.
    """
    code = read_int32(pipe)
    try:
        return Action(code)
    except ValueError:
        raise UnknownActionError(code) from None
