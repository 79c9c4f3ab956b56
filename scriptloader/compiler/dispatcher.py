# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Maps each incoming action to the handler that applies it to a session.

Every handler consumes exactly the payload its action declares in
`ACTION_PAYLOADS` and returns whether the read loop should continue.
"""

from typing import BinaryIO, Callable

from scriptloader.compiler.actions import Action, read_action
from scriptloader.compiler.protocol import ProtocolError, read_string
from scriptloader.compiler.result import write_result
from scriptloader.compiler.session import CompilerSession
from scriptloader.support.logging import get_logger

logger = get_logger(__name__)

Handler = Callable[[CompilerSession, BinaryIO, BinaryIO], bool]


def _add_preprocessor_symbol(session, reader, writer) -> bool:
    session.add_symbol(read_string(reader))
    return True


def _add_source_file(session, reader, writer) -> bool:
    session.add_source_file(read_string(reader))
    return True


def _add_reference(session, reader, writer) -> bool:
    session.add_reference(read_string(reader))
    return True


def _enable_compatibility_shim(session, reader, writer) -> bool:
    session.enable_compatibility_shim()
    return True


def _compile(session, reader, writer) -> bool:
    write_result(writer, session.compile())
    # The host still owes us FINISH.
    return True


def _finish(session, reader, writer) -> bool:
    return False


HANDLERS: dict[Action, Handler] = {
    Action.ADD_PREPROCESSOR_SYMBOL: _add_preprocessor_symbol,
    Action.ADD_SOURCE_FILE: _add_source_file,
    Action.ADD_REFERENCE: _add_reference,
    Action.ENABLE_COMPATIBILITY_SHIM: _enable_compatibility_shim,
    Action.COMPILE: _compile,
    Action.FINISH: _finish,
}

assert set(HANDLERS) == set(Action), "Every action needs a handler"


def dispatch(
    action: Action, session: CompilerSession, reader: BinaryIO, writer: BinaryIO
) -> bool:
    """Run the handler for *action*; returns False only for `FINISH`."""
    try:
        return HANDLERS[action](session, reader, writer)
    except EOFError as e:
        raise ProtocolError(f"Truncated {action.name} frame: {e}") from e


def serve(session: CompilerSession, reader: BinaryIO, writer: BinaryIO) -> None:
    """Apply actions from *reader* to *session* until `FINISH`.

    Raises `EOFError` if the host closes the stream between frames
    without sending `FINISH`, and `ProtocolError` (including
    `UnknownActionError`) on a malformed stream. No attempt is made to
    skip past a bad frame.
    """
    while True:
        action = read_action(reader)
        logger.debug("Received %s", action.name)
        if not dispatch(action, session, reader, writer):
            return
