################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Small 3D vector helpers."""

from __future__ import annotations

from typing import Optional

import numpy as np
from numpy.typing import NDArray

from .units import PhysicalConstants
from .units import assert_finite


class Vec3:
    """Vector utilities for 3D vectors."""

    @staticmethod
    def as_vec3(v: NDArray[np.float64], name: str = "v") -> NDArray[np.float64]:
        """Coerce input to a finite float64 3-vector."""
        vec: NDArray[np.float64] = np.asarray(v, dtype=np.float64).reshape(-1)
        if vec.shape != (3,):
            raise ValueError(f"{name} must be shape (3,), got {vec.shape}")
        assert_finite(vec, name)
        return vec

    @staticmethod
    def normalize(
        v: NDArray[np.float64],
        eps: float = PhysicalConstants.EPS,
    ) -> NDArray[np.float64]:
        """Normalize a 3-vector."""
        vec: NDArray[np.float64] = Vec3.as_vec3(v)
        norm: float = float(np.linalg.norm(vec))
        if norm < eps:
            raise ValueError("v has near-zero norm")
        return vec / norm

    @staticmethod
    def normalize_or_zero(
        v: NDArray[np.float64],
        eps: float = PhysicalConstants.EPS,
    ) -> NDArray[np.float64]:
        """Normalize a 3-vector, returning the zero vector for near-zero input."""
        vec: NDArray[np.float64] = Vec3.as_vec3(v)
        norm: float = float(np.linalg.norm(vec))
        if norm < eps:
            return np.zeros(3, dtype=np.float64)
        return vec / norm

    @staticmethod
    def angle_between(
        u: NDArray[np.float64],
        v: NDArray[np.float64],
        eps: float = PhysicalConstants.EPS,
    ) -> float:
        """Return the angle between two 3-vectors in radians."""
        u_vec: NDArray[np.float64] = Vec3.as_vec3(u, "u")
        v_vec: NDArray[np.float64] = Vec3.as_vec3(v, "v")
        u_norm: float = float(np.linalg.norm(u_vec))
        v_norm: float = float(np.linalg.norm(v_vec))
        if u_norm < eps or v_norm < eps:
            raise ValueError("u and v must be non-zero")
        cos_angle: float = float(np.dot(u_vec, v_vec) / (u_norm * v_norm))
        cos_angle = float(np.clip(cos_angle, -1.0, 1.0))
        return float(np.arccos(cos_angle))

    @staticmethod
    def alignment_rotation(
        u: NDArray[np.float64],
        v: NDArray[np.float64],
        eps: float = 1e-9,
    ) -> Optional[tuple[NDArray[np.float64], float]]:
        """Return the (axis, angle) rotating unit vector u onto unit vector v.

        The axis is normalize(u x v) and the angle is acos(u . v). Returns
        None when the rotation is undefined: u and v already aligned, or
        exactly opposed so that the cross product has no direction.
        """
        u_vec: NDArray[np.float64] = Vec3.as_vec3(u, "u")
        v_vec: NDArray[np.float64] = Vec3.as_vec3(v, "v")
        cross: NDArray[np.float64] = np.cross(u_vec, v_vec)
        cross_norm: float = float(np.linalg.norm(cross))
        if cross_norm < eps:
            return None
        dot: float = float(np.clip(np.dot(u_vec, v_vec), -1.0, 1.0))
        return cross / cross_norm, float(np.arccos(dot))
