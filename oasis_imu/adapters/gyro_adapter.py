################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Gyroscope reading adapter."""

from __future__ import annotations

from typing import Optional

import numpy as np

from oasis_imu.adapters.raw_reading import RawReading
from oasis_imu.adapters.raw_reading import require_scale
from oasis_imu.adapters.raw_reading import scale_vector
from oasis_imu.adapters.raw_reading import timestamp_to_ns
from oasis_imu.imu_types.sample import Sample
from oasis_imu.math_utils.units import Angle
from oasis_imu.math_utils.units import Time


# Supported gyro units and their scale to rad/s
GYRO_UNITS: dict[str, float] = {
    "deg/s": Angle.deg2rad(1.0),
    "rad/s": 1.0,
}


class GyroAdapter:
    """
    Convert raw gyroscope readings to angular velocity samples in rad/s.

    The defaults match a driver that reports degrees per second with
    microsecond timestamps.
    """

    def __init__(
        self,
        units: str = "deg/s",
        timestamp_scale_ns: int = Time.NS_PER_US,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            units: Device units, one of GYRO_UNITS
            timestamp_scale_ns: Nanoseconds per device timestamp tick
        """
        if units not in GYRO_UNITS:
            raise ValueError(f"Unsupported gyro units: {units}")

        self._units: str = units
        self._scale_rads: float = GYRO_UNITS[units]
        self._timestamp_scale_ns: int = require_scale(timestamp_scale_ns)

    @property
    def units(self) -> str:
        return self._units

    def convert(self, reading: RawReading) -> Optional[Sample]:
        """
        Convert a raw reading, or return None when it is unusable.
        """
        if not reading.is_usable():
            return None

        t_ns: Optional[int] = timestamp_to_ns(
            reading.timestamp, self._timestamp_scale_ns
        )
        if t_ns is None:
            return None

        omega_rads: Optional[np.ndarray] = scale_vector(reading, self._scale_rads)
        if omega_rads is None:
            return None

        return Sample.gyro(t_ns, omega_rads)
