# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Token encoder: ledger-output locking scripts carrying application fields."""

from .pushdrop import MAX_FIELD_BYTES, MAX_FIELDS, LockingToken, PushDrop
from .script import build_p2pk_script, build_tagged_data_script, pushed_value, read_tagged_data

__all__ = [
    "MAX_FIELDS",
    "MAX_FIELD_BYTES",
    "LockingToken",
    "PushDrop",
    "build_p2pk_script",
    "build_tagged_data_script",
    "pushed_value",
    "read_tagged_data",
]
