# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Conditional compilation directives for script sources.

Directives are comment lines, so an unprocessed file is still valid
Python:

    #if UNITY_STANDALONE_WIN && !DEVELOPMENT_BUILD
    import winreg
    #else
    winreg = None
    #endif

Supported directives are `#if`, `#elif`, `#else`, `#endif`, `#define`
and `#undef`. The keyword must follow the `#` directly, so ordinary
comments such as `# if needed` are left alone. Expressions accept
symbols, `true`, `false`, `!`, `&&`, `||`, `==`, `!=` and parentheses.

Directive lines and lines in inactive branches are replaced by empty
lines, which keeps line numbers in later diagnostics accurate.
"""

import re
from dataclasses import dataclass
from typing import Iterable

_DIRECTIVE = re.compile(r"^\s*#(if|elif|else|endif|define|undef)\b(.*)$")
_TOKEN = re.compile(r"\s*(?:(\|\||&&|==|!=|!|\(|\))|([A-Za-z_][A-Za-z0-9_]*))")
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class PreprocessorError(ValueError):
    """A malformed directive; carries the 1-based line it was found on."""

    def __init__(self, message: str, line: int) -> None:
        super().__init__(message)
        self.line = line


class _ExpressionParser:
    """Recursive descent over `||` < `&&` < `==`/`!=` < `!`."""

    def __init__(self, text: str, symbols: set[str], line: int) -> None:
        self._symbols = symbols
        self._line = line
        self._tokens = self._tokenize(text)
        self._pos = 0

    def _tokenize(self, text: str) -> list[str]:
        tokens = []
        pos = 0
        text = text.rstrip()
        while pos < len(text):
            match = _TOKEN.match(text, pos)
            if match is None:
                raise PreprocessorError(
                    f"Unexpected character in directive: {text[pos:].strip()!r}",
                    self._line,
                )
            tokens.append(match.group(1) or match.group(2))
            pos = match.end()
        return tokens

    def _peek(self) -> str | None:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _take(self) -> str:
        token = self._peek()
        if token is None:
            raise PreprocessorError("Incomplete directive expression", self._line)
        self._pos += 1
        return token

    def parse(self) -> bool:
        if not self._tokens:
            raise PreprocessorError("Missing directive expression", self._line)
        value = self._or()
        if self._peek() is not None:
            raise PreprocessorError(
                f"Unexpected token in directive: {self._peek()!r}", self._line
            )
        return value

    def _or(self) -> bool:
        value = self._and()
        while self._peek() == "||":
            self._take()
            rhs = self._and()
            value = value or rhs
        return value

    def _and(self) -> bool:
        value = self._equality()
        while self._peek() == "&&":
            self._take()
            rhs = self._equality()
            value = value and rhs
        return value

    def _equality(self) -> bool:
        value = self._unary()
        while self._peek() in ("==", "!="):
            op = self._take()
            rhs = self._unary()
            value = (value == rhs) if op == "==" else (value != rhs)
        return value

    def _unary(self) -> bool:
        if self._peek() == "!":
            self._take()
            return not self._unary()
        return self._primary()

    def _primary(self) -> bool:
        token = self._take()
        if token == "(":
            value = self._or()
            if self._take() != ")":
                raise PreprocessorError("Expected ')'", self._line)
            return value
        if token == "true":
            return True
        if token == "false":
            return False
        if _IDENTIFIER.match(token):
            return token in self._symbols
        raise PreprocessorError(f"Unexpected token in directive: {token!r}", self._line)


def evaluate(expression: str, symbols: Iterable[str], line: int = 0) -> bool:
    """Evaluate a directive expression against a set of defined symbols."""
    return _ExpressionParser(expression, set(symbols), line).parse()


@dataclass
class _Branch:
    line: int
    parent_active: bool
    taken: bool
    else_seen: bool = False


def _blank(line: str) -> str:
    return line[len(line.rstrip("\r\n")) :]


def preprocess(text: str, symbols: Iterable[str]) -> str:
    """Apply conditional directives in *text* for the given *symbols*."""
    defined = set(symbols)
    stack: list[_Branch] = []
    active = True
    out = []
    for lineno, line in enumerate(text.splitlines(keepends=True), start=1):
        match = _DIRECTIVE.match(line)
        if match is None:
            out.append(line if active else _blank(line))
            continue

        keyword, rest = match.group(1), match.group(2).strip()
        out.append(_blank(line))
        if keyword == "if":
            value = evaluate(rest, defined, lineno)
            stack.append(_Branch(lineno, parent_active=active, taken=active and value))
            active = active and value
        elif keyword == "elif":
            if not stack or stack[-1].else_seen:
                raise PreprocessorError("#elif without matching #if", lineno)
            branch = stack[-1]
            value = evaluate(rest, defined, lineno)
            active = branch.parent_active and not branch.taken and value
            branch.taken = branch.taken or active
        elif keyword == "else":
            if not stack or stack[-1].else_seen:
                raise PreprocessorError("#else without matching #if", lineno)
            branch = stack[-1]
            active = branch.parent_active and not branch.taken
            branch.taken = True
            branch.else_seen = True
        elif keyword == "endif":
            if not stack:
                raise PreprocessorError("#endif without matching #if", lineno)
            active = stack.pop().parent_active
        else:
            if not _IDENTIFIER.match(rest) or rest in ("true", "false"):
                raise PreprocessorError(f"Invalid symbol name: {rest!r}", lineno)
            if active:
                if keyword == "define":
                    defined.add(rest)
                else:
                    defined.discard(rest)

    if stack:
        raise PreprocessorError("#if without matching #endif", stack[-1].line)
    return "".join(out)
