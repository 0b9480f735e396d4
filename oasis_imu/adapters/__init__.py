################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Adapters from raw device readings to canonical samples."""

from __future__ import annotations

from oasis_imu.adapters.accel_adapter import AccelAdapter
from oasis_imu.adapters.gyro_adapter import GyroAdapter
from oasis_imu.adapters.raw_reading import RawReading


__all__ = [
    "AccelAdapter",
    "GyroAdapter",
    "RawReading",
]
