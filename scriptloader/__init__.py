# Copyright 2026 The Scriptloader Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Compile script plugins in a helper process and load them into the host."""

__version__ = "0.1.0"
