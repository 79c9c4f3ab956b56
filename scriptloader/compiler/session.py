# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Mutable compilation state held by the compiler helper.

A session is built up one action at a time and compiled exactly once.

Source files are parsed when they are added, under the parse options in
force at that moment. A symbol added afterwards does not apply to files
that were already added:

    session.add_symbol("A")
    session.add_source_file("one.py")   # parsed with {A}
    session.add_symbol("B")
    session.add_source_file("two.py")   # parsed with {A, B}

Callers rely on this ordering and send their global symbols before any
file, so it must not be "fixed" by reparsing at compile time.
"""

from pathlib import Path

from scriptloader.compiler.backend import Compiler, ParseOptions, PythonCompiler, SourceUnit
from scriptloader.compiler.diagnostics import format_diagnostic
from scriptloader.compiler.result import CompileResult
from scriptloader.support.logging import get_logger

logger = get_logger(__name__)

DEFAULT_LIBRARY_NAME = "ScriptLibrary"


class SessionAlreadyCompiledError(RuntimeError):
    """`compile` was requested twice on the same session."""


class CompilerSession:
    def __init__(
        self,
        compiler: Compiler | None = None,
        *,
        name: str = DEFAULT_LIBRARY_NAME,
        shim_path: Path | None = None,
        language_version: tuple[int, int] | None = None,
    ) -> None:
        self.compiler = compiler if compiler is not None else PythonCompiler()
        self.name = name
        self.shim_path = shim_path
        self.symbols: set[str] = set()
        self.parse_options = ParseOptions(language_version=language_version)
        self.units: list[SourceUnit] = []
        self.references: list[str] = []
        self._compiled = False

    @property
    def compiled(self) -> bool:
        return self._compiled

    def add_symbol(self, symbol: str) -> None:
        self.symbols.add(symbol)
        self.parse_options = self.parse_options.with_symbols(self.symbols)

    def add_source_file(self, path: str) -> SourceUnit:
        unit = self.compiler.parse(path, self.parse_options)
        self.units.append(unit)
        logger.debug(
            "Parsed %s with symbols %s (%d diagnostics)",
            path,
            sorted(unit.symbols),
            len(unit.diagnostics),
        )
        return unit

    def add_reference(self, path: str) -> None:
        if path not in self.references:
            self.references.append(path)

    def enable_compatibility_shim(self) -> None:
        """Reference the bundled forwarding archive for minimal runtimes."""
        if self.shim_path is None:
            raise RuntimeError("No compatibility shim is configured for this session")
        self.add_reference(str(self.shim_path))

    def compile(self) -> CompileResult:
        """Compile everything accumulated so far.

        Raises `SessionAlreadyCompiledError` on a second call: the host
        expects exactly one result per session.
        """
        if self._compiled:
            raise SessionAlreadyCompiledError(
                f"Session '{self.name}' has already been compiled"
            )
        self._compiled = True

        emitted = self.compiler.emit(self.name, self.units, self.references)
        logger.info(
            "Compiled %d units against %d references: %s",
            len(self.units),
            len(self.references),
            "success" if emitted.success else "failure",
        )
        if emitted.success:
            return CompileResult.succeeded(emitted.image or b"")
        return CompileResult.failed(
            [format_diagnostic(d) for d in emitted.diagnostics]
        )
