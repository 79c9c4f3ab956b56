# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

import logging
import sys

from scriptloader.support.environment import log_level

_ROOT_LOGGER = "scriptloader"
_FORMAT = "[%(name)s] %(levelname)s: %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a logger in the `scriptloader` hierarchy."""
    if name != _ROOT_LOGGER and not name.startswith(_ROOT_LOGGER + "."):
        name = f"{_ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def configure_logging(stream=None, level: str | int | None = None) -> logging.Logger:
    """Attach a stream handler to the `scriptloader` logger.

    The level defaults to `SCRIPTLOADER_LOG_LEVEL`. Calling this more than
    once does not stack handlers.
    """
    root = logging.getLogger(_ROOT_LOGGER)
    if not any(getattr(h, "_scriptloader", False) for h in root.handlers):
        handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._scriptloader = True
        root.addHandler(handler)
    root.setLevel(level if level is not None else log_level())
    return root
