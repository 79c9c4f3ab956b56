# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""
Compiles an application's script plugins through the helper process.

The driver sends, in order: every preprocessor symbol, the compatibility
shim (micro runtimes only), every source file, every reference, then a
single COMPILE, waits for the result, and sends FINISH.
"""

import logging
from pathlib import Path
from typing import Any, Callable

from scriptloader.compiler.actions import Action
from scriptloader.compiler.protocol import ProtocolError
from scriptloader.compiler.result import CompileResult
from scriptloader.host.discovery import discover_references, discover_sources
from scriptloader.host.loader import load_library
from scriptloader.host.platform import AppLayout, HostInfo, InstallLayout
from scriptloader.host.supervisor import (
    CompilerLaunchError,
    CompilerProcess,
    resolve_helper_path,
)
from scriptloader.host.symbols import MICRO_SYMBOL, preprocessor_symbols
from scriptloader.support.logging import get_logger

PlannedAction = tuple[Action, tuple[str, ...]]


class SessionDriver:
    def __init__(
        self,
        host: HostInfo,
        install: InstallLayout,
        app: AppLayout,
        *,
        helper_path: Path | None = None,
        loader: Callable[[bytes], Any] = load_library,
        logger: logging.Logger | None = None,
        ready_timeout: float | None = None,
        stderr=None,
    ) -> None:
        self.host = host
        self.install = install
        self.app = app
        self.helper_path = helper_path
        self.loader = loader
        self.logger = logger if logger is not None else get_logger(__name__)
        self.ready_timeout = ready_timeout
        self.stderr = stderr

    def plan(self) -> list[PlannedAction]:
        """The configuration actions to send before COMPILE."""
        actions: list[PlannedAction] = [
            (Action.ADD_PREPROCESSOR_SYMBOL, (symbol,))
            for symbol in preprocessor_symbols(self.host)
        ]
        if self.host.uses_micro_runtime:
            actions.append((Action.ENABLE_COMPATIBILITY_SHIM, ()))
            actions.append((Action.ADD_PREPROCESSOR_SYMBOL, (MICRO_SYMBOL,)))
        actions.extend(
            (Action.ADD_SOURCE_FILE, (str(path),))
            for path in discover_sources(self.install, self.app)
        )
        actions.extend(
            (Action.ADD_REFERENCE, (str(path),))
            for path in discover_references(self.install, self.app)
        )
        return actions

    def compile(self) -> CompileResult | None:
        """Run one helper session; None if the helper could not deliver a result."""
        try:
            actions = self.plan()
        except ValueError as e:
            self.logger.error("Unable to prepare the script compiler session: %s", e)
            return None
        helper_path = self.helper_path
        try:
            if helper_path is None:
                helper_path = resolve_helper_path(self.install, self.host.platform)
            with CompilerProcess(
                helper_path,
                platform=self.host.platform,
                ready_timeout=self.ready_timeout,
                stderr=self.stderr,
            ) as proc:
                for action, payload in actions:
                    proc.send(action, *payload)
                result = proc.compile()
                proc.finish()
        except CompilerLaunchError as e:
            self.logger.error("Unable to start the script compiler: %s", e)
            return None
        except ProtocolError as e:
            self.logger.error("Lost contact with the script compiler: %s", e)
            return None
        return result

    def run(self) -> Any | None:
        """Compile and load the plugins; None if compilation failed."""
        result = self.compile()
        if result is None:
            return None
        if result.success:
            return self.loader(result.payload)

        self.logger.error("Compilation of script plugins failed.")
        for message in result.diagnostics:
            self.logger.error(message)
        return None
