################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Timestamped sensor samples in canonical units."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np

from oasis_imu.math_utils.units import Time


class SampleKind(Enum):
    """Sensor channel a sample belongs to."""

    # Angular velocity about body axes, rad/s
    GYRO = "gyro"

    # Specific force along body axes, m/s^2
    ACCEL = "accel"


@dataclass(frozen=True)
class Sample:
    """Immutable sensor sample.

    Attributes:
        kind: Channel the sample was produced by
        t_ns: Monotonic timestamp in int nanoseconds since an arbitrary epoch
        vector: Measurement in body axes, rad/s for gyro and m/s^2 for accel
    """

    kind: SampleKind
    t_ns: int
    vector: np.ndarray

    def __post_init__(self) -> None:
        """Validate sample fields and coerce the vector."""
        if not isinstance(self.kind, SampleKind):
            raise ValueError("kind must be a SampleKind")
        if not isinstance(self.t_ns, int) or isinstance(self.t_ns, bool):
            raise ValueError("t_ns must be an int")

        vector: np.ndarray = _as_float_array(self.vector, "vector", (3,))
        vector.setflags(write=False)
        object.__setattr__(self, "vector", vector)

    @classmethod
    def gyro(cls, t_ns: int, omega_rads: Any) -> Sample:
        """Create a gyro sample from angular velocity in rad/s."""
        return cls(kind=SampleKind.GYRO, t_ns=t_ns, vector=omega_rads)

    @classmethod
    def accel(cls, t_ns: int, accel_mps2: Any) -> Sample:
        """Create an accel sample from specific force in m/s^2."""
        return cls(kind=SampleKind.ACCEL, t_ns=t_ns, vector=accel_mps2)

    @property
    def t_s(self) -> float:
        """Timestamp in float seconds, for diagnostics only."""
        return Time.ns_to_s(self.t_ns)


def _as_float_array(value: Any, name: str, shape: tuple[int, ...]) -> np.ndarray:
    """Coerce a value to a finite float64 array of the given shape."""
    array: np.ndarray = np.array(value, dtype=np.float64)
    if array.shape != shape:
        raise ValueError(f"{name} must have shape {shape}")
    if not np.all(np.isfinite(array)):
        raise ValueError(f"{name} must contain finite values")
    return array
