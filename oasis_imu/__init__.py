################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Orientation estimation from asynchronous gyroscope and accelerometer data."""

from __future__ import annotations

from oasis_imu.config.estimator_params import EstimatorParams
from oasis_imu.filter.orientation_estimator import OrientationEstimator
from oasis_imu.imu_types.attitude import Attitude
from oasis_imu.imu_types.sample import Sample
from oasis_imu.imu_types.sample import SampleKind


__all__ = [
    "Attitude",
    "EstimatorParams",
    "OrientationEstimator",
    "Sample",
    "SampleKind",
]
