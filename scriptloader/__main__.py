# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Compile an application's script plugins from the command line."""

import argparse
import sys
from pathlib import Path

from scriptloader.host.driver import SessionDriver
from scriptloader.host.platform import (
    MICRO_RUNTIME_TOKEN,
    AppLayout,
    HostInfo,
    HostPlatform,
    InstallLayout,
)
from scriptloader.host.supervisor import CompilerLaunchError, deploy_helper
from scriptloader.support.logging import configure_logging


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Compile script plugins")
    parser.add_argument("--data-path", type=Path, required=True, help="Application data directory")
    parser.add_argument("--version", required=True, help="Host version, e.g. 2019.4.1f1")
    parser.add_argument("--root", type=Path, default=None, help="Installation root")
    parser.add_argument("--helper", type=Path, default=None, help="Compiler helper to run")
    parser.add_argument(
        "--platform",
        choices=[p.value for p in HostPlatform],
        default=None,
        help="Host platform (default: the running one)",
    )
    parser.add_argument("--debug-build", action="store_true", help="Define DEVELOPMENT_BUILD")
    parser.add_argument(
        "--micro-runtime",
        action="store_true",
        help="Behave as a host with the minimal core runtime",
    )
    parser.add_argument(
        "--deploy-helper",
        action="store_true",
        help="Install the helper into the installation's Tools/ first",
    )
    parser.add_argument("--load", action="store_true", help="Load the compiled library")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    configure_logging(level="DEBUG" if args.verbose else None)

    install = InstallLayout(args.root) if args.root else InstallLayout.default()
    platform = HostPlatform(args.platform) if args.platform else HostPlatform.current()
    if args.deploy_helper:
        try:
            deploy_helper(install, platform)
        except CompilerLaunchError as e:
            print(f"Unable to deploy the script compiler: {e}", file=sys.stderr)
            return 1

    host = HostInfo(
        version=args.version,
        platform=platform,
        debug_build=args.debug_build,
        runtime_key_token=MICRO_RUNTIME_TOKEN if args.micro_runtime else None,
    )
    driver = SessionDriver(host, install, AppLayout(args.data_path), helper_path=args.helper)

    if args.load:
        library = driver.run()
        if library is None:
            return 1
        print(f"Loaded {library.name}: {', '.join(library.modules) or '(no modules)'}")
        return 0

    result = driver.compile()
    if result is None:
        return 1
    if result.success:
        print(f"Compiled {len(result.payload)} bytes")
        return 0
    for message in result.diagnostics:
        print(message, file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
