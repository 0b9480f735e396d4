################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Configuration schema for the orientation estimator."""

from __future__ import annotations

import math
from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import fields
from typing import Any
from typing import Mapping

from oasis_imu.math_utils.units import PhysicalConstants


# Fraction of the accel correction angle applied per accel sample
FUSION_GAIN: float = 0.02

# Gyro intervals longer than this, in seconds, are skipped as a stale gap
MAX_GYRO_DT_S: float = 0.5

# Lower bound of the trusted accel magnitude band, in g
ACCEL_MIN_G: float = 0.85

# Upper bound of the trusted accel magnitude band, in g
ACCEL_MAX_G: float = 1.15

# Magnitude of 1 g in m/s^2
GRAVITY_MPS2: float = PhysicalConstants.GRAVITY_MPS2

# Integral gain for gyro bias estimation, 1/s per rad of error (0 disables)
GYRO_BIAS_GAIN: float = 0.0


class EstimatorParamsError(ValueError):
    """Raised when estimator parameter validation fails."""


def _require_finite(value: float, name: str) -> None:
    """Require a finite real value."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise EstimatorParamsError(f"{name} must be a number")
    if not math.isfinite(value):
        raise EstimatorParamsError(f"{name} must be finite")


def _require_positive(value: float, name: str) -> None:
    """Require a positive value."""
    _require_finite(value, name)
    if value <= 0.0:
        raise EstimatorParamsError(f"{name} must be positive")


def _require_non_negative(value: float, name: str) -> None:
    """Require a non-negative value."""
    _require_finite(value, name)
    if value < 0.0:
        raise EstimatorParamsError(f"{name} must be non-negative")


@dataclass(frozen=True)
class EstimatorParams:
    """Validated, immutable estimator configuration.

    Attributes:
        fusion_gain: Blend weight of the accel correction, in (0, 1]. Higher
            values correct drift faster but feed more accel noise into the
            attitude
        max_gyro_dt_s: Stale-gap threshold for gyro integration in seconds
        accel_min_g: Lower bound of the accel magnitude band, in g
        accel_max_g: Upper bound of the accel magnitude band, in g
        gravity_mps2: Magnitude of 1 g in m/s^2
        gyro_bias_gain: Integral gain for the gyro bias estimate, 0 disables
    """

    fusion_gain: float = FUSION_GAIN
    max_gyro_dt_s: float = MAX_GYRO_DT_S
    accel_min_g: float = ACCEL_MIN_G
    accel_max_g: float = ACCEL_MAX_G
    gravity_mps2: float = GRAVITY_MPS2
    gyro_bias_gain: float = GYRO_BIAS_GAIN

    def __post_init__(self) -> None:
        """Validate on construction."""
        self.validate()

    def validate(self) -> None:
        """Validate fields and raise EstimatorParamsError on failure."""
        _require_positive(self.fusion_gain, "fusion_gain")
        if self.fusion_gain > 1.0:
            raise EstimatorParamsError("fusion_gain must be in (0, 1]")
        _require_positive(self.max_gyro_dt_s, "max_gyro_dt_s")
        _require_positive(self.accel_min_g, "accel_min_g")
        _require_positive(self.accel_max_g, "accel_max_g")
        if not self.accel_min_g < 1.0 < self.accel_max_g:
            raise EstimatorParamsError(
                "accel band must satisfy accel_min_g < 1 < accel_max_g"
            )
        _require_positive(self.gravity_mps2, "gravity_mps2")
        _require_non_negative(self.gyro_bias_gain, "gyro_bias_gain")

    @property
    def accel_min_mps2(self) -> float:
        """Lower bound of the accel magnitude band in m/s^2."""
        return self.accel_min_g * self.gravity_mps2

    @property
    def accel_max_mps2(self) -> float:
        """Upper bound of the accel magnitude band in m/s^2."""
        return self.accel_max_g * self.gravity_mps2

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EstimatorParams:
        """Construct parameters from a mapping, rejecting unknown keys."""
        known: set[str] = {f.name for f in fields(cls)}
        unknown: list[str] = sorted(set(data) - known)
        if unknown:
            raise EstimatorParamsError(f"Unknown parameters: {', '.join(unknown)}")
        return cls(**dict(data))

    def as_dict(self) -> dict[str, float]:
        """Return a plain dict representation."""
        return asdict(self)
