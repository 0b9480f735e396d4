################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Type definitions for IMU orientation estimation."""

from __future__ import annotations

from oasis_imu.imu_types.attitude import Attitude
from oasis_imu.imu_types.sample import Sample
from oasis_imu.imu_types.sample import SampleKind


__all__ = [
    "Attitude",
    "Sample",
    "SampleKind",
]
