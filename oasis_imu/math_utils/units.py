################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Unit conversion helpers and physical constants."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


class Angle:
    """Angular unit conversions."""

    # Units: rad per degree
    RAD_PER_DEG: float = float(np.pi / 180.0)

    @staticmethod
    def deg2rad(degrees: float) -> float:
        """Convert an angle or rate in degrees to radians."""
        return float(degrees) * Angle.RAD_PER_DEG


class Time:
    """Timestamp conversions.

    Canonical timestamps are int nanoseconds since an arbitrary epoch. Float
    seconds are only used for dt arithmetic and diagnostics, never for
    ordering or equality.
    """

    NS_PER_S: int = 1_000_000_000
    NS_PER_US: int = 1_000

    @staticmethod
    def ns_to_s(t_ns: int) -> float:
        """Convert int nanoseconds to float seconds."""
        return float(t_ns) / Time.NS_PER_S

    @staticmethod
    def s_to_ns(t_s: float) -> int:
        """Convert float seconds to int nanoseconds, rounded to nearest."""
        if not np.isfinite(t_s):
            raise ValueError("t_s must be finite")
        return int(round(t_s * Time.NS_PER_S))


class PhysicalConstants:
    """Physical constants used by math utilities."""

    GRAVITY_MPS2: float = 9.80665
    EPS: float = 1e-12


def assert_finite(x: NDArray[np.float64], name: str) -> None:
    """Raise ValueError when the array contains non-finite values."""
    if not np.all(np.isfinite(x)):
        raise ValueError(f"{name} must be finite")
