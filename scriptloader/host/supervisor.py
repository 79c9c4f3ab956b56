# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""
Launches the compiler helper and owns its lifetime.

On Windows the helper is executed directly. Elsewhere it is run through
the host's own interpreter, and its arguments are passed as one quoted,
backslash-escaped command line that `split_command_line` turns back into
an argument vector.

Use `CompilerProcess` as a context manager so the pipes are closed and
the child reaped on every exit path:

    with CompilerProcess(helper_path) as proc:
        proc.send(Action.ADD_SOURCE_FILE, "/abs/path/plugin.py")
        result = proc.compile()
        proc.finish()
"""

import os
import select
import shutil
import subprocess
import sys
from enum import Enum
from pathlib import Path

from scriptloader.compiler import helper as helper_module
from scriptloader.compiler.actions import Action, write_action
from scriptloader.compiler.protocol import ProtocolError
from scriptloader.compiler.result import CompileResult, read_result
from scriptloader.compiler.session import SessionAlreadyCompiledError
from scriptloader.host.platform import HostPlatform, InstallLayout
from scriptloader.support import environment
from scriptloader.support.logging import get_logger

logger = get_logger(__name__)

HELPER_DIR = "ScriptCompiler"
# Console script from setup.py; the direct-launch helper on Windows.
LAUNCHER_NAME = "scriptloader-compiler"
HELPER_NAMES = {
    HostPlatform.WINDOWS: "scriptc.exe",
    HostPlatform.LINUX: "scriptc.py",
    HostPlatform.OSX: "scriptc.py",
}

# Characters a shell would otherwise interpret.
ESCAPED_CHARACTERS = frozenset("`~!#$&*()\t{}[]|\\;'\"\n<>? =")

DEFAULT_EXIT_TIMEOUT = 10.0


class CompilerLaunchError(RuntimeError):
    """The helper could not be located, started, or never became ready."""


class LaunchMode(Enum):
    DIRECT = "direct"
    INTERPRETER = "interpreter"


LAUNCH_MODES = {
    HostPlatform.WINDOWS: LaunchMode.DIRECT,
    HostPlatform.LINUX: LaunchMode.INTERPRETER,
    HostPlatform.OSX: LaunchMode.INTERPRETER,
}


def launch_mode(platform: HostPlatform) -> LaunchMode:
    mode = LAUNCH_MODES.get(platform)
    if mode is None:
        raise CompilerLaunchError(f"No way to launch the compiler helper on {platform.value}")
    return mode


def escape_arguments(*arguments: str) -> str:
    """Quote and escape *arguments* into a single command line."""
    quoted = []
    for argument in arguments:
        escaped = "".join(
            "\\" + c if c in ESCAPED_CHARACTERS else c for c in argument
        )
        quoted.append(f'"{escaped}"')
    return " ".join(quoted)


def split_command_line(command_line: str) -> list[str]:
    """Tokenize a command line produced by `escape_arguments`.

    Unquoted whitespace separates arguments, double quotes group, and a
    backslash takes the next character literally inside or outside quotes.
    This, not a POSIX shell, is the inverse of `escape_arguments`: `shlex`
    would keep the backslash before most escaped characters inside quotes.
    """
    arguments = []
    current: list[str] = []
    in_token = False
    in_quotes = False
    escaped = False
    for c in command_line:
        if escaped:
            current.append(c)
            escaped = False
        elif c == "\\":
            escaped = True
            in_token = True
        elif c == '"':
            in_quotes = not in_quotes
            in_token = True
        elif c in " \t\n" and not in_quotes:
            if in_token:
                arguments.append("".join(current))
                current = []
                in_token = False
        else:
            current.append(c)
            in_token = True
    if escaped:
        raise ValueError("Command line ends with a dangling escape")
    if in_quotes:
        raise ValueError("Command line has an unterminated quote")
    if in_token:
        arguments.append("".join(current))
    return arguments


def build_command(
    helper_path: Path, platform: HostPlatform, arguments: tuple[str, ...] = ()
) -> list[str]:
    """The argument vector that starts *helper_path* on *platform*."""
    if launch_mode(platform) == LaunchMode.DIRECT:
        return [str(helper_path), *arguments]
    command_line = escape_arguments(str(helper_path), *arguments)
    logger.debug("Helper command line: %s %s", sys.executable, command_line)
    return [sys.executable, *split_command_line(command_line)]


def resolve_helper_path(layout: InstallLayout, platform: HostPlatform) -> Path:
    override = environment.helper_override()
    if override is not None:
        return override
    name = HELPER_NAMES.get(platform)
    if name is None:
        raise CompilerLaunchError(f"No compiler helper is defined for {platform.value}")
    return layout.tools / HELPER_DIR / name


def _launcher_path() -> Path:
    launcher = shutil.which(LAUNCHER_NAME)
    if launcher is None:
        raise CompilerLaunchError(
            f"'{LAUNCHER_NAME}' is not on PATH; install scriptloader to deploy the helper"
        )
    return Path(launcher)


def deploy_helper(layout: InstallLayout, platform: HostPlatform | None = None) -> Path:
    """Install the compiler helper into the installation's Tools/.

    Interpreter-mode platforms get a copy of the helper script and its
    shims. Windows executes the helper directly, so it gets a copy of the
    `scriptloader-compiler` console launcher, which finds the shims in the
    installed package.
    """
    platform = platform if platform is not None else HostPlatform.current()
    mode = launch_mode(platform)
    target_dir = layout.tools / HELPER_DIR
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / HELPER_NAMES[platform]

    if mode == LaunchMode.DIRECT:
        shutil.copy2(_launcher_path(), target)
        return target

    source = Path(helper_module.__file__).resolve()
    shutil.copyfile(source, target)
    shutil.copytree(
        source.parent / helper_module.SHIM_DIR,
        target_dir / helper_module.SHIM_DIR,
        dirs_exist_ok=True,
    )
    return target


class CompilerProcess:
    """One helper child process and the pipes connected to it.

    The host writes actions to the child's stdin and reads the single
    result from its stdout. The child's stderr is inherited unless
    *stderr* says otherwise; it never shares a stream with the protocol.
    """

    def __init__(
        self,
        helper_path: Path,
        *,
        platform: HostPlatform | None = None,
        ready_timeout: float | None = None,
        exit_timeout: float = DEFAULT_EXIT_TIMEOUT,
        stderr=None,
    ) -> None:
        self.helper_path = Path(helper_path)
        self.platform = platform if platform is not None else HostPlatform.current()
        self.ready_timeout = (
            ready_timeout if ready_timeout is not None else environment.ready_timeout()
        )
        self.exit_timeout = exit_timeout
        self._stderr = stderr
        self._proc: subprocess.Popen | None = None
        self._compile_requested = False
        self._finished = False

    # -- lifecycle ------------------------------------------------------------

    def __enter__(self) -> "CompilerProcess":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def returncode(self) -> int | None:
        return self._proc.returncode if self._proc is not None else None

    def start(self) -> None:
        if self._proc is not None:
            raise RuntimeError("Compiler helper already started")
        if not self.helper_path.exists():
            raise CompilerLaunchError(f"Compiler helper not found: {self.helper_path}")
        launch_mode(self.platform)

        # A pipe the child writes one byte to once it is reading stdin.
        # Windows cannot pass descriptors this way; there we only check
        # that the process is alive.
        use_ready_pipe = os.name != "nt"
        ready_read = ready_write = None
        arguments: tuple[str, ...] = ()
        if use_ready_pipe:
            ready_read, ready_write = os.pipe()
            arguments = ("--ready-fd", str(ready_write))

        try:
            try:
                args = build_command(self.helper_path, self.platform, arguments)
                self._proc = subprocess.Popen(
                    args,
                    stdin=subprocess.PIPE,
                    stdout=subprocess.PIPE,
                    stderr=self._stderr,
                    pass_fds=(ready_write,) if use_ready_pipe else (),
                )
            except OSError as e:
                raise CompilerLaunchError(f"Failed to start compiler helper: {e}") from e
            finally:
                if ready_write is not None:
                    os.close(ready_write)
            logger.info("Started compiler helper (pid %d)", self._proc.pid)
            if use_ready_pipe:
                self._wait_ready(ready_read)
            elif self._proc.poll() is not None:
                self._abort()
                raise CompilerLaunchError("Compiler helper exited immediately")
        finally:
            if ready_read is not None:
                os.close(ready_read)

    def _wait_ready(self, fd: int) -> None:
        readable, _, _ = select.select([fd], [], [], self.ready_timeout)
        if not readable:
            self._abort()
            raise CompilerLaunchError(
                f"Compiler helper did not become ready within {self.ready_timeout}s"
            )
        if not os.read(fd, 1):
            code = self._abort()
            raise CompilerLaunchError(
                f"Compiler helper exited before becoming ready (exit code {code})"
            )

    def _abort(self) -> int | None:
        proc = self._proc
        if proc is None:
            return None
        if proc.poll() is None:
            proc.kill()
        for pipe in (proc.stdin, proc.stdout):
            self._close_pipe(pipe)
        code = proc.wait()
        self._proc = None
        return code

    @staticmethod
    def _close_pipe(pipe) -> None:
        if pipe is None:
            return
        try:
            pipe.close()
        except BrokenPipeError:
            # Unflushed frames for a child that is already gone.
            logger.debug("Compiler helper closed its input before teardown")

    def close(self) -> None:
        """Send FINISH if still owed, close both pipes and reap the child.

        A child that does not exit within `exit_timeout` is killed.
        """
        proc = self._proc
        if proc is None:
            return
        try:
            if not self._finished and proc.poll() is None:
                try:
                    self.finish()
                except ProtocolError as e:
                    logger.debug("Could not send FINISH: %s", e)
        finally:
            for pipe in (proc.stdin, proc.stdout):
                self._close_pipe(pipe)
            try:
                proc.wait(timeout=self.exit_timeout)
            except subprocess.TimeoutExpired:
                logger.warning(
                    "Compiler helper did not exit within %ss, killing it",
                    self.exit_timeout,
                )
                proc.kill()
                proc.wait()
            logger.info("Compiler helper exited with code %s", proc.returncode)

    # -- protocol -------------------------------------------------------------

    def _stdin(self):
        if self._proc is None:
            raise RuntimeError("Compiler helper is not running")
        if self._finished:
            raise RuntimeError("FINISH has been sent; no further actions are allowed")
        return self._proc.stdin

    def _write(self, action: Action, *payload: str, flush: bool = False) -> None:
        pipe = self._stdin()
        try:
            write_action(pipe, action, *payload)
            if flush:
                pipe.flush()
        except BrokenPipeError as e:
            raise ProtocolError(f"Compiler helper closed its input: {e}") from e

    def send(self, action: Action, *payload: str) -> None:
        """Send one configuration action."""
        if action in (Action.COMPILE, Action.FINISH):
            raise ValueError(f"Use {action.name.lower()}() to send {action.name}")
        self._write(action, *payload)

    def compile(self) -> CompileResult:
        """Send COMPILE and block until the result frame arrives."""
        if self._compile_requested:
            raise SessionAlreadyCompiledError("COMPILE was already sent to this helper")
        self._compile_requested = True
        self._write(Action.COMPILE, flush=True)
        return read_result(self._proc.stdout)

    def finish(self) -> None:
        self._write(Action.FINISH, flush=True)
        self._finished = True
