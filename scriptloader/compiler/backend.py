# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""
The compiler capability used by a compiler session, and its Python
implementation.

A `Compiler` does two things: `parse` one source file under the parse
options in force at that moment, and `emit` a library from everything
parsed so far plus a list of references. The session never looks inside
a `SourceUnit`; it only keeps them in order.
"""

import ast
import warnings
import zipfile
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterable, Protocol, Sequence

from scriptloader.compiler import image as library_image
from scriptloader.compiler.diagnostics import (
    COMPILE_ERROR,
    COMPILER_WARNING,
    DUPLICATE_MODULE,
    PREPROCESSOR_ERROR,
    REFERENCE_INVALID,
    REFERENCE_NOT_FOUND,
    SOURCE_UNREADABLE,
    SYNTAX_ERROR,
    CompilerDiagnostic,
    FileLocation,
    error_diagnostics,
)
from scriptloader.compiler.preprocessor import PreprocessorError, preprocess


@dataclass(frozen=True)
class ParseOptions:
    """Options applied to a source file when it is parsed.

    `language_version` is a `(major, minor)` tuple passed to `ast.parse`
    as `feature_version`; `None` means the running interpreter's grammar.
    """

    language_version: tuple[int, int] | None = None
    symbols: frozenset[str] = frozenset()

    def with_symbols(self, symbols: Iterable[str]) -> "ParseOptions":
        return replace(self, symbols=frozenset(symbols))


@dataclass
class SourceUnit:
    """One parsed source file; `tree` is None when parsing failed."""

    path: str
    module_name: str
    options: ParseOptions
    tree: ast.Module | None = None
    diagnostics: list[CompilerDiagnostic] = field(default_factory=list)

    @property
    def symbols(self) -> frozenset[str]:
        """The preprocessor symbols this unit was parsed with."""
        return self.options.symbols


@dataclass
class EmitResult:
    success: bool
    image: bytes | None = None
    diagnostics: list[CompilerDiagnostic] = field(default_factory=list)


class Compiler(Protocol):
    def parse(self, path: str, options: ParseOptions) -> SourceUnit:
        """Read and parse the file at *path* under *options*."""

    def emit(
        self, name: str, units: Sequence[SourceUnit], references: Sequence[str]
    ) -> EmitResult:
        """Compile *units* against *references* into a library image."""


def _syntax_error_diagnostic(
    e: SyntaxError, path: str, code: str
) -> CompilerDiagnostic:
    return CompilerDiagnostic(
        message=e.msg,
        severity="error",
        code=code,
        location=FileLocation(
            filename=path,
            start_line=e.lineno or 0,
            start_col=e.offset or 0,
            end_line=getattr(e, "end_lineno", None) or 0,
            end_col=getattr(e, "end_offset", None) or 0,
        ),
    )


def _failure_diagnostic(e: Exception, path: str, code: str) -> CompilerDiagnostic:
    # RecursionError and friends carry no position; report against the file.
    return CompilerDiagnostic(
        message=f"{type(e).__name__}: {e}",
        code=code,
        location=FileLocation(filename=path),
    )


def _warning_diagnostics(
    caught: list[warnings.WarningMessage], path: str
) -> list[CompilerDiagnostic]:
    return [
        CompilerDiagnostic(
            message=str(w.message),
            severity="warning",
            code=COMPILER_WARNING,
            location=FileLocation(filename=path, start_line=w.lineno or 0),
        )
        for w in caught
    ]


class PythonCompiler:
    """Compiles Python script sources into a `LibraryImage`."""

    def __init__(self, optimize: int = -1) -> None:
        self.optimize = optimize

    def parse(self, path: str, options: ParseOptions) -> SourceUnit:
        unit = SourceUnit(path=path, module_name=Path(path).stem, options=options)
        try:
            text = Path(path).read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as e:
            unit.diagnostics.append(
                CompilerDiagnostic(
                    message=f"Source file could not be read: {e}",
                    code=SOURCE_UNREADABLE,
                    location=FileLocation(filename=path),
                )
            )
            return unit

        try:
            text = preprocess(text, options.symbols)
        except PreprocessorError as e:
            unit.diagnostics.append(
                CompilerDiagnostic(
                    message=str(e),
                    code=PREPROCESSOR_ERROR,
                    location=FileLocation(filename=path, start_line=e.line),
                )
            )
            return unit

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            try:
                unit.tree = ast.parse(
                    text, filename=path, feature_version=options.language_version
                )
            except SyntaxError as e:
                unit.diagnostics.append(_syntax_error_diagnostic(e, path, SYNTAX_ERROR))
            except (RecursionError, MemoryError, ValueError) as e:
                unit.diagnostics.append(_failure_diagnostic(e, path, SYNTAX_ERROR))
        unit.diagnostics.extend(_warning_diagnostics(caught, path))
        return unit

    def _check_reference(self, reference: str) -> CompilerDiagnostic | None:
        path = Path(reference)
        if not path.is_file():
            return CompilerDiagnostic(
                message=f"Metadata file '{reference}' could not be found",
                code=REFERENCE_NOT_FOUND,
                location=FileLocation(filename=reference),
            )
        if not zipfile.is_zipfile(path):
            return CompilerDiagnostic(
                message=f"Metadata file '{reference}' is not a module archive",
                code=REFERENCE_INVALID,
                location=FileLocation(filename=reference),
            )
        return None

    def emit(
        self, name: str, units: Sequence[SourceUnit], references: Sequence[str]
    ) -> EmitResult:
        diagnostics: list[CompilerDiagnostic] = []
        modules: list[library_image.CompiledModule] = []
        seen: dict[str, str] = {}

        for unit in units:
            diagnostics.extend(unit.diagnostics)
            if unit.tree is None:
                continue
            if unit.module_name in seen:
                diagnostics.append(
                    CompilerDiagnostic(
                        message=(
                            f"Module '{unit.module_name}' is already defined "
                            f"by '{seen[unit.module_name]}'"
                        ),
                        code=DUPLICATE_MODULE,
                        location=FileLocation(filename=unit.path),
                    )
                )
                continue
            seen[unit.module_name] = unit.path

            with warnings.catch_warnings(record=True) as caught:
                warnings.simplefilter("always")
                try:
                    code = compile(
                        unit.tree,
                        unit.path,
                        "exec",
                        dont_inherit=True,
                        optimize=self.optimize,
                    )
                except SyntaxError as e:
                    diagnostics.append(
                        _syntax_error_diagnostic(e, unit.path, COMPILE_ERROR)
                    )
                    code = None
                except (RecursionError, MemoryError, ValueError) as e:
                    diagnostics.append(_failure_diagnostic(e, unit.path, COMPILE_ERROR))
                    code = None
            diagnostics.extend(_warning_diagnostics(caught, unit.path))
            if code is not None:
                modules.append(
                    library_image.CompiledModule(unit.module_name, unit.path, code)
                )

        for reference in references:
            diag = self._check_reference(reference)
            if diag is not None:
                diagnostics.append(diag)

        if error_diagnostics(diagnostics):
            return EmitResult(success=False, diagnostics=diagnostics)

        payload = library_image.dumps(
            library_image.LibraryImage(
                name=name, modules=modules, references=list(references)
            )
        )
        return EmitResult(success=True, image=payload, diagnostics=diagnostics)
