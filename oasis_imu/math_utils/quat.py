################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Quaternion utilities using the wxyz convention."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from .small_linalg3 import Vec3
from .units import PhysicalConstants
from .units import assert_finite


# Units: rad. Meaning: rotation angles below this use the first-order
# small-angle quaternion to avoid dividing by a vanishing norm
SMALL_ANGLE_RAD: float = 1e-9


@dataclass(frozen=True)
class Quaternion:
    """Quaternion stored in wxyz order.

    Conventions:
        - Hamilton product, q_AC = q_AB * q_BC
        - A unit quaternion q rotates vectors with v' = q * [0, v] * q^-1,
          equivalently v' = R(q) @ v
        - Attitude quaternions map body vectors into the ground frame
    """

    wxyz: NDArray[np.float64]

    def __post_init__(self) -> None:
        """Validate quaternion inputs and normalize storage."""
        wxyz: NDArray[np.float64] = np.asarray(self.wxyz, dtype=float)
        if wxyz.shape != (4,):
            raise ValueError("wxyz must be shape (4,)")
        assert_finite(wxyz, "wxyz")
        object.__setattr__(self, "wxyz", wxyz)

    @staticmethod
    def identity() -> "Quaternion":
        """Return the identity quaternion."""
        return Quaternion.from_wxyz(1.0, 0.0, 0.0, 0.0)

    @staticmethod
    def from_wxyz(w: float, x: float, y: float, z: float) -> "Quaternion":
        """Create a quaternion from components."""
        return Quaternion(np.array([w, x, y, z], dtype=float))

    @staticmethod
    def from_axis_angle(axis: NDArray[np.float64], angle: float) -> "Quaternion":
        """Create a rotation of angle radians about axis.

        A near-zero axis yields the identity quaternion.
        """
        axis_vec: NDArray[np.float64] = Vec3.normalize_or_zero(axis)
        if not np.any(axis_vec):
            return Quaternion.identity()
        half: float = 0.5 * float(angle)
        sin_half: float = math.sin(half)
        return Quaternion.from_wxyz(
            math.cos(half),
            float(axis_vec[0]) * sin_half,
            float(axis_vec[1]) * sin_half,
            float(axis_vec[2]) * sin_half,
        )

    @staticmethod
    def from_rotvec(w: NDArray[np.float64]) -> "Quaternion":
        """Create a quaternion from a rotation vector (angle * axis)."""
        vec: NDArray[np.float64] = Vec3.as_vec3(w, "w")
        angle: float = float(np.linalg.norm(vec))
        if angle < SMALL_ANGLE_RAD:
            # 0.5 scales the vector part for the first-order mapping
            return Quaternion.from_wxyz(
                1.0,
                0.5 * float(vec[0]),
                0.5 * float(vec[1]),
                0.5 * float(vec[2]),
            ).normalized()
        return Quaternion.from_axis_angle(vec / angle, angle)

    def norm(self) -> float:
        """Return the quaternion norm."""
        return float(np.linalg.norm(self.wxyz))

    def normalized(self) -> "Quaternion":
        """Return a normalized quaternion."""
        norm: float = self.norm()
        if norm < PhysicalConstants.EPS:
            raise ValueError("Quaternion norm is too small")
        return Quaternion(self.wxyz / norm)

    def canonical(self) -> "Quaternion":
        """Return the equivalent quaternion with w >= 0."""
        if self.wxyz[0] < 0.0:
            return Quaternion(-self.wxyz)
        return self

    def conjugate(self) -> "Quaternion":
        """Return the conjugate quaternion."""
        q: NDArray[np.float64] = self.wxyz
        return Quaternion.from_wxyz(
            float(q[0]), float(-q[1]), float(-q[2]), float(-q[3])
        )

    def inverse(self) -> "Quaternion":
        """Return the inverse quaternion."""
        return self.normalized().conjugate()

    def __mul__(self, other: "Quaternion") -> "Quaternion":
        """Multiply two quaternions using the Hamilton product."""
        q1: NDArray[np.float64] = self.wxyz
        q2: NDArray[np.float64] = other.wxyz
        w1: float = float(q1[0])
        x1: float = float(q1[1])
        y1: float = float(q1[2])
        z1: float = float(q1[3])
        w2: float = float(q2[0])
        x2: float = float(q2[1])
        y2: float = float(q2[2])
        z2: float = float(q2[3])
        w: float = w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2
        x: float = w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2
        y: float = w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2
        z: float = w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2
        return Quaternion.from_wxyz(w, x, y, z)

    def as_matrix(self) -> NDArray[np.float64]:
        """Return the rotation matrix representation."""
        q: NDArray[np.float64] = self.normalized().wxyz
        w: float = float(q[0])
        x: float = float(q[1])
        y: float = float(q[2])
        z: float = float(q[3])
        return np.array(
            [
                [
                    1.0 - 2.0 * (y * y + z * z),
                    2.0 * (x * y - z * w),
                    2.0 * (x * z + y * w),
                ],
                [
                    2.0 * (x * y + z * w),
                    1.0 - 2.0 * (x * x + z * z),
                    2.0 * (y * z - x * w),
                ],
                [
                    2.0 * (x * z - y * w),
                    2.0 * (y * z + x * w),
                    1.0 - 2.0 * (x * x + y * y),
                ],
            ],
            dtype=float,
        )

    def rotate(self, v: NDArray[np.float64]) -> NDArray[np.float64]:
        """Rotate a 3-vector by this quaternion."""
        vec: NDArray[np.float64] = Vec3.as_vec3(v)
        return self.as_matrix() @ vec

    def as_axis_angle(self) -> tuple[NDArray[np.float64], float]:
        """Return (axis, angle) with angle in [0, pi].

        The zero rotation returns the zero vector as its axis.
        """
        q: NDArray[np.float64] = self.normalized().canonical().wxyz
        sin_half: float = float(np.linalg.norm(q[1:4]))
        axis: NDArray[np.float64] = Vec3.normalize_or_zero(q[1:4], eps=1e-15)
        if not np.any(axis):
            return axis, 0.0

        # Equal to 2 * acos(w) but well conditioned near zero rotation
        angle: float = 2.0 * math.atan2(sin_half, float(q[0]))
        return axis, angle

    def as_rotvec(self) -> NDArray[np.float64]:
        """Return the rotation vector (angle * axis)."""
        axis: NDArray[np.float64]
        angle: float
        axis, angle = self.as_axis_angle()
        return axis * angle

    def angle_to(self, other: "Quaternion") -> float:
        """Return the rotation angle between two attitudes in radians."""
        delta: Quaternion = self.inverse() * other.normalized()
        return delta.as_axis_angle()[1]

    def to_wxyz(self) -> NDArray[np.float64]:
        """Return a copy of the quaternion components."""
        return np.array(self.wxyz, dtype=float)

    def almost_equal(self, other: "Quaternion", atol: float = 1e-9) -> bool:
        """Check approximate equality, accounting for sign ambiguity."""
        q1: NDArray[np.float64] = self.wxyz
        q2: NDArray[np.float64] = other.wxyz
        if np.allclose(q1, q2, atol=atol):
            return True
        return bool(np.allclose(q1, -q2, atol=atol))
