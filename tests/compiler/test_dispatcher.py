# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

import io
import struct

import pytest

from scriptloader.compiler.actions import Action, UnknownActionError, read_action, write_action
from scriptloader.compiler.dispatcher import HANDLERS, dispatch, serve
from scriptloader.compiler.protocol import ProtocolError
from scriptloader.compiler.result import read_result
from scriptloader.compiler.session import CompilerSession, SessionAlreadyCompiledError


def _stream(*frames) -> io.BytesIO:
    pipe = io.BytesIO()
    for action, *payload in frames:
        write_action(pipe, action, *payload)
    pipe.seek(0)
    return pipe


def _source(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text)
    return str(path)


def test_every_action_has_exactly_one_handler():
    assert set(HANDLERS) == set(Action)


@pytest.mark.parametrize(
    "action, payload",
    [
        (Action.ADD_PREPROCESSOR_SYMBOL, ("UNITY_STANDALONE",)),
        (Action.ADD_SOURCE_FILE, ("/nowhere/plugin.py",)),
        (Action.ADD_REFERENCE, ("/nowhere/lib.pyz",)),
        (Action.ENABLE_COMPATIBILITY_SHIM, ()),
        (Action.FINISH, ()),
    ],
)
def test_handler_consumes_exactly_its_payload(tmp_path, action, payload):
    trailer = b"\xde\xad\xbe\xef"
    reader = _stream((action, *payload))
    reader.seek(0, io.SEEK_END)
    reader.write(trailer)
    reader.seek(0)
    session = CompilerSession(shim_path=tmp_path / "shim.pyz")

    assert read_action(reader) is action
    dispatch(action, session, reader, io.BytesIO())
    assert reader.read() == trailer


def test_configuration_actions_mutate_session(tmp_path):
    shim = tmp_path / "shim.pyz"
    path = _source(tmp_path, "a.py", "x = 1\n")
    reader = _stream(
        (Action.ADD_PREPROCESSOR_SYMBOL, "A"),
        (Action.ADD_SOURCE_FILE, path),
        (Action.ADD_REFERENCE, "/core/lib.pyz"),
        (Action.ENABLE_COMPATIBILITY_SHIM,),
        (Action.FINISH,),
    )
    session = CompilerSession(shim_path=shim)
    writer = io.BytesIO()
    serve(session, reader, writer)

    assert session.symbols == {"A"}
    assert [u.path for u in session.units] == [path]
    assert session.references == ["/core/lib.pyz", str(shim)]
    assert not session.compiled
    assert writer.getvalue() == b""


def test_only_finish_stops():
    session = CompilerSession()
    reader = _stream((Action.ADD_PREPROCESSOR_SYMBOL, "A"))
    assert dispatch(Action.ADD_PREPROCESSOR_SYMBOL, session, reader, io.BytesIO()) is True
    assert dispatch(Action.FINISH, session, io.BytesIO(), io.BytesIO()) is False


def test_compile_writes_result_and_keeps_serving(tmp_path):
    path = _source(tmp_path, "hello.py", "GREETING = 'hi'\n")
    reader = _stream((Action.ADD_SOURCE_FILE, path), (Action.COMPILE,), (Action.FINISH,))
    writer = io.BytesIO()
    serve(CompilerSession(), reader, writer)

    writer.seek(0)
    result = read_result(writer)
    assert result.success
    assert len(result.payload) > 0
    assert writer.read() == b""


def test_compile_failure_result(tmp_path):
    path = _source(tmp_path, "broken.py", "def broken(:\n")
    reader = _stream((Action.ADD_SOURCE_FILE, path), (Action.COMPILE,), (Action.FINISH,))
    writer = io.BytesIO()
    serve(CompilerSession(), reader, writer)

    writer.seek(0)
    result = read_result(writer)
    assert not result.success
    assert len(result.diagnostics) == 1
    assert result.diagnostics[0].startswith(path)


def test_bytes_after_finish_are_not_read():
    reader = _stream((Action.FINISH,), (Action.ADD_PREPROCESSOR_SYMBOL, "LATE"))
    session = CompilerSession()
    serve(session, reader, io.BytesIO())
    assert session.symbols == set()
    assert read_action(reader) is Action.ADD_PREPROCESSOR_SYMBOL


def test_unknown_action_stops_without_skipping():
    reader = _stream((Action.ADD_PREPROCESSOR_SYMBOL, "BEFORE"))
    reader.seek(0, io.SEEK_END)
    position = reader.tell()
    reader.write(struct.pack("<i", 99))
    write_action(reader, Action.ADD_PREPROCESSOR_SYMBOL, "AFTER")
    reader.seek(0)
    session = CompilerSession()

    with pytest.raises(UnknownActionError):
        serve(session, reader, io.BytesIO())
    assert session.symbols == {"BEFORE"}
    # Only the bad code itself was consumed.
    assert reader.tell() == position + 4


def test_truncated_payload_is_a_protocol_error():
    reader = io.BytesIO(struct.pack("<i", Action.ADD_SOURCE_FILE))
    with pytest.raises(ProtocolError):
        serve(CompilerSession(), reader, io.BytesIO())


def test_payload_shorter_than_declared_length():
    reader = io.BytesIO(struct.pack("<i", Action.ADD_SOURCE_FILE) + struct.pack("<i", 50) + b"/short")
    with pytest.raises(ProtocolError):
        serve(CompilerSession(), reader, io.BytesIO())


def test_end_of_stream_without_finish():
    with pytest.raises(EOFError):
        serve(CompilerSession(), _stream((Action.ADD_PREPROCESSOR_SYMBOL, "A")), io.BytesIO())


def test_second_compile_fails_loudly():
    reader = _stream((Action.COMPILE,), (Action.COMPILE,), (Action.FINISH,))
    writer = io.BytesIO()
    with pytest.raises(SessionAlreadyCompiledError):
        serve(CompilerSession(), reader, writer)

    writer.seek(0)
    assert read_result(writer).success
    assert writer.read() == b""


def test_source_too_deep_to_parse_still_yields_a_result(tmp_path):
    path = _source(tmp_path, "deep.py", "x = " + "+".join(["1"] * 200000) + "\n")
    reader = _stream((Action.ADD_SOURCE_FILE, path), (Action.COMPILE,), (Action.FINISH,))
    writer = io.BytesIO()
    serve(CompilerSession(), reader, writer)

    writer.seek(0)
    result = read_result(writer)
    assert not result.success
    assert len(result.diagnostics) == 1
    assert result.diagnostics[0].startswith(path)
