"""Serialization helpers for JSON output."""
from __future__ import annotations

from collections.abc import Mapping, Sequence, Set
from dataclasses import asdict, is_dataclass

import numpy as np
import pandas as pd


def to_jsonable(value):
    """Recursively convert objects into JSON-serializable types.

    Sets are emitted as sorted lists so residue collections serialize the
    same way on every run.
    """
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, pd.DataFrame):
        return value.to_dict(orient="records")
    if is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(asdict(value))

    if isinstance(value, Mapping):
        return {to_jsonable(key): to_jsonable(val) for key, val in value.items()}
    if isinstance(value, Set):
        return [to_jsonable(item) for item in sorted(value)]
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [to_jsonable(item) for item in value]
    return value
