# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""The compiled library image and its dill serialization.

Code objects are only loadable by the interpreter version that produced
them, so the image records the producer's cache tag and the loader
checks it before executing anything.
"""

import sys
import types
from dataclasses import dataclass, field

import dill

# Deeply nested plugin sources produce deep code object graphs that can
# exceed the default 1000-frame recursion limit during serialization.
DILL_RECURSION_LIMIT = 10000


@dataclass
class CompiledModule:
    name: str
    path: str
    code: types.CodeType


@dataclass
class LibraryImage:
    name: str
    modules: list[CompiledModule] = field(default_factory=list)
    references: list[str] = field(default_factory=list)
    cache_tag: str | None = field(default_factory=lambda: sys.implementation.cache_tag)


def dumps(image: LibraryImage) -> bytes:
    """Serialize `image` with dill, temporarily raising the recursion limit."""
    saved = sys.getrecursionlimit()
    sys.setrecursionlimit(DILL_RECURSION_LIMIT)
    try:
        return dill.dumps(image)
    finally:
        sys.setrecursionlimit(saved)


def loads(data: bytes) -> LibraryImage:
    """Deserialize a `LibraryImage` from `data`."""
    saved = sys.getrecursionlimit()
    sys.setrecursionlimit(DILL_RECURSION_LIMIT)
    try:
        image = dill.loads(data)
    finally:
        sys.setrecursionlimit(saved)
    if not isinstance(image, LibraryImage):
        raise ValueError(f"Library payload has unexpected type: {type(image)}")
    return image
