# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Turns a compiled library payload into live modules."""

import sys
import types
from dataclasses import dataclass, field

from scriptloader.compiler import image as library_image
from scriptloader.support.logging import get_logger

logger = get_logger(__name__)


@dataclass
class LoadedLibrary:
    name: str
    package: types.ModuleType
    modules: dict[str, types.ModuleType] = field(default_factory=dict)
    references: list[str] = field(default_factory=list)


def load_library(payload: bytes) -> LoadedLibrary:
    """Execute every module of the library image in *payload*.

    Modules are registered as `<library>.<module>` in `sys.modules`
    before any of them runs, so plugins can import one another, and are
    executed in compile order. References are appended to `sys.path`.
    """
    image = library_image.loads(payload)
    if image.cache_tag != sys.implementation.cache_tag:
        raise ImportError(
            f"Library '{image.name}' was compiled for {image.cache_tag}, "
            f"this interpreter is {sys.implementation.cache_tag}"
        )

    for reference in image.references:
        if reference not in sys.path:
            sys.path.append(reference)

    package = types.ModuleType(image.name)
    package.__path__ = []
    sys.modules[image.name] = package

    library = LoadedLibrary(
        name=image.name, package=package, references=list(image.references)
    )
    for compiled in image.modules:
        qualified = f"{image.name}.{compiled.name}"
        module = types.ModuleType(qualified)
        module.__file__ = compiled.path
        module.__package__ = image.name
        sys.modules[qualified] = module
        setattr(package, compiled.name, module)
        library.modules[compiled.name] = module

    for compiled in image.modules:
        module = library.modules[compiled.name]
        exec(compiled.code, module.__dict__)
    logger.info("Loaded library %s with %d modules", image.name, len(library.modules))
    return library
