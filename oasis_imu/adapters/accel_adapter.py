################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Accelerometer reading adapter."""

from __future__ import annotations

from typing import Optional

import numpy as np

from oasis_imu.adapters.raw_reading import RawReading
from oasis_imu.adapters.raw_reading import require_scale
from oasis_imu.adapters.raw_reading import scale_vector
from oasis_imu.adapters.raw_reading import timestamp_to_ns
from oasis_imu.imu_types.sample import Sample
from oasis_imu.math_utils.units import PhysicalConstants
from oasis_imu.math_utils.units import Time


# Supported accel units
ACCEL_UNITS: tuple[str, ...] = ("m/s^2", "g")


class AccelAdapter:
    """
    Convert raw accelerometer readings to specific force samples in m/s^2.

    The defaults match a driver that reports m/s^2 with microsecond
    timestamps.
    """

    def __init__(
        self,
        units: str = "m/s^2",
        timestamp_scale_ns: int = Time.NS_PER_US,
        gravity_mps2: float = PhysicalConstants.GRAVITY_MPS2,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            units: Device units, one of ACCEL_UNITS
            timestamp_scale_ns: Nanoseconds per device timestamp tick
            gravity_mps2: Magnitude of 1 g, used when units is "g"
        """
        if units not in ACCEL_UNITS:
            raise ValueError(f"Unsupported accel units: {units}")
        if not gravity_mps2 > 0.0:
            raise ValueError("gravity_mps2 must be positive")

        self._units: str = units

        # Units: m/s^2 per device unit
        self._scale_mps2: float = float(gravity_mps2) if units == "g" else 1.0

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

        accel_mps2: Optional[np.ndarray] = scale_vector(reading, self._scale_mps2)
        if accel_mps2 is None:
            return None

        return Sample.accel(t_ns, accel_mps2)
