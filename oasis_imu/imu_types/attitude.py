################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Attitude snapshot published by the orientation estimator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from oasis_imu.math_utils.quat import Quaternion


@dataclass(frozen=True)
class Attitude:
    """Orientation of the body with respect to the ground inertial frame.

    Attributes:
        quaternion: Unit quaternion mapping body vectors into the ground frame
        angle_rad: Rotation angle in [0, pi]
        axis: Unit rotation axis, or the zero vector for the zero rotation
        t_ns: Timestamp of the sample that last changed the attitude, or None
            if no sample has changed it since construction or reset
    """

    quaternion: Quaternion
    angle_rad: float
    axis: np.ndarray
    t_ns: Optional[int] = None

    @classmethod
    def from_quaternion(
        cls, quaternion: Quaternion, t_ns: Optional[int] = None
    ) -> Attitude:
        """Build a snapshot, deriving the angle-axis form from the quaternion."""
        q: Quaternion = quaternion.normalized().canonical()
        axis: np.ndarray
        angle: float
        axis, angle = q.as_axis_angle()
        q.wxyz.setflags(write=False)
        axis.setflags(write=False)
        return cls(quaternion=q, angle_rad=angle, axis=axis, t_ns=t_ns)

    @classmethod
    def identity(cls) -> Attitude:
        """Return the zero-rotation attitude."""
        return cls.from_quaternion(Quaternion.identity())

    @property
    def wxyz(self) -> np.ndarray:
        """Quaternion components in wxyz order."""
        return self.quaternion.to_wxyz()

    @property
    def rotation_vector(self) -> np.ndarray:
        """Angle-axis 3-vector, angle_rad * axis."""
        return self.axis * self.angle_rad

    def up_in_body(self) -> np.ndarray:
        """Ground +Z expressed in body axes."""
        return self.quaternion.inverse().rotate(np.array([0.0, 0.0, 1.0]))
