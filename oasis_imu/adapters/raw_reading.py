################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Raw device readings handed to the sample adapters."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass(frozen=True)
class RawReading:
    """Reading as reported by a device driver, before unit conversion.

    Attributes:
        x: First axis value in device units
        y: Second axis value in device units
        z: Third axis value in device units
        timestamp: Device timestamp in device ticks
        valid: False when the driver flagged the reading as unusable
    """

    x: float
    y: float
    z: float
    timestamp: int
    valid: bool = True

    def is_usable(self) -> bool:
        """Return True when the reading can be converted to a sample."""
        if not self.valid:
            return False
        if isinstance(self.timestamp, bool) or not isinstance(self.timestamp, int):
            return False
        if self.timestamp < 0:
            return False
        return all(math.isfinite(float(v)) for v in (self.x, self.y, self.z))


def timestamp_to_ns(timestamp: int, scale_ns: int) -> Optional[int]:
    """Convert a device timestamp to int nanoseconds.

    Args:
        timestamp: Device timestamp in ticks
        scale_ns: Nanoseconds per device tick

    Returns:
        Timestamp in nanoseconds, or None when the timestamp is negative
    """
    if timestamp < 0:
        return None
    return int(timestamp) * int(scale_ns)


def scale_vector(reading: RawReading, scale: float) -> Optional[np.ndarray]:
    """Scale the reading axes to canonical units.

    Returns:
        The scaled 3-vector, or None when scaling overflows to a non-finite
        value
    """
    with np.errstate(over="ignore", invalid="ignore"):
        vector: np.ndarray = (
            np.array([reading.x, reading.y, reading.z], dtype=np.float64) * scale
        )
    if not np.all(np.isfinite(vector)):
        return None
    return vector


def require_scale(scale_ns: int) -> int:
    """Validate a nanoseconds-per-tick scale."""
    if isinstance(scale_ns, bool) or not isinstance(scale_ns, int):
        raise ValueError("timestamp_scale_ns must be an int")
    if scale_ns <= 0:
        raise ValueError("timestamp_scale_ns must be positive")
    return scale_ns
