################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Complementary-filter orientation estimator for gyro and accel streams."""

from __future__ import annotations

import dataclasses
import logging
import threading
from typing import Callable
from typing import Optional

import numpy as np

from oasis_imu.config.estimator_params import EstimatorParams
from oasis_imu.filter.channel_state import ChannelState
from oasis_imu.imu_types.attitude import Attitude
from oasis_imu.imu_types.sample import Sample
from oasis_imu.imu_types.sample import SampleKind
from oasis_imu.math_utils.quat import Quaternion
from oasis_imu.math_utils.small_linalg3 import Vec3
from oasis_imu.math_utils.units import Time


_LOG: logging.Logger = logging.getLogger(__name__)


# Ground-frame up direction
UP_GROUND: np.ndarray = np.array([0.0, 0.0, 1.0], dtype=np.float64)

# Units: ns. Meaning: minimum sample-time spacing between gap log messages
GAP_LOG_PERIOD_NS: int = Time.NS_PER_S


AttitudeCallback = Callable[[Attitude], None]


class OrientationEstimator:
    """
    Estimate body attitude from asynchronous gyro and accel samples.

    Block diagram:

        gyro sample (t, omega)
             |
             v
        [dt = t - t_prev] --(first, dt <= 0, dt > max)--> resync, no update
             |
             v
        [dq = exp((omega - bias) * dt)]
             |
             v
        q := normalize(q * dq)            body-frame increment
             ^
             |
        q := normalize(dq_c * q)          ground-frame correction
             ^
             |
        [dq_c = rot(axis, gain * angle)]
             ^
             |
        [axis, angle aligning R(q) a_hat with +Z] --(degenerate)--> no-op
             ^
             |
        [|a| in band?] --(no)--> skip, dynamic motion
             ^
             |
        accel sample (t, a)

    The attitude quaternion maps body vectors into the ground frame. Yaw is
    unobservable from gravity, so accel corrections only act about
    horizontal ground axes.

    Thread safety:
        All entry points are serialized by a single lock. Readers receive an
        immutable Attitude snapshot. Subscribers are notified after the lock
        is released, so they may call back into the estimator.
    """

    def __init__(
        self,
        fusion_gain: Optional[float] = None,
        *,
        params: Optional[EstimatorParams] = None,
    ) -> None:
        """
        Initialize the estimator with the identity attitude.

        Args:
            fusion_gain: Blend weight for accel corrections in (0, 1].
                Overrides params.fusion_gain when both are given
            params: Full estimator configuration, defaults when omitted
        """
        if params is None:
            params = EstimatorParams()
        if fusion_gain is not None:
            params = dataclasses.replace(params, fusion_gain=fusion_gain)

        self._params: EstimatorParams = params

        self._lock: threading.Lock = threading.Lock()
        self._quaternion: Quaternion = Quaternion.identity()
        self._attitude: Attitude = Attitude.identity()
        self._gyro: ChannelState = ChannelState()
        self._accel: ChannelState = ChannelState()
        self._gyro_bias: np.ndarray = np.zeros(3, dtype=np.float64)
        self._subscribers: list[AttitudeCallback] = []
        self._last_gap_log_t_ns: Optional[int] = None
        self._diagnostics: dict[str, int] = _new_diagnostics()

    @property
    def params(self) -> EstimatorParams:
        return self._params

    @property
    def fusion_gain(self) -> float:
        return self._params.fusion_gain

    @property
    def gyro_channel(self) -> ChannelState:
        """Return a snapshot of the gyro channel state."""
        with self._lock:
            return self._gyro.snapshot()

    @property
    def accel_channel(self) -> ChannelState:
        """Return a snapshot of the accel channel state."""
        with self._lock:
            return self._accel.snapshot()

    @property
    def gyro_bias(self) -> np.ndarray:
        """Return the current gyro bias estimate in rad/s."""
        with self._lock:
            return self._gyro_bias.copy()

    @property
    def diagnostics(self) -> dict[str, int]:
        """Return a copy of the sample-handling counters."""
        with self._lock:
            return dict(self._diagnostics)

    def current_attitude(self) -> Attitude:
        """Return the latest attitude snapshot."""
        with self._lock:
            return self._attitude

    def subscribe(self, callback: AttitudeCallback) -> Callable[[], None]:
        """
        Register a callback invoked with each new attitude.

        Returns:
            A function that removes the subscription
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def reset(self, quaternion: Optional[Quaternion] = None) -> None:
        """
        Reset the attitude and return both channels to uninitialized.

        Args:
            quaternion: Attitude to restart from, identity when omitted
        """
        q: Quaternion = (
            Quaternion.identity() if quaternion is None else quaternion.normalized()
        )
        with self._lock:
            self._quaternion = q
            self._gyro = ChannelState()
            self._accel = ChannelState()
            self._gyro_bias = np.zeros(3, dtype=np.float64)
            self._last_gap_log_t_ns = None
            attitude: Attitude = self._publish(None)
        self._notify(attitude)

    def on_gyro_sample(self, sample: Optional[Sample]) -> bool:
        """
        Integrate the attitude forward with an angular velocity sample.

        Args:
            sample: Gyro sample, or None when the adapter dropped the reading

        Returns:
            True when the attitude was updated
        """
        if sample is None:
            self._count_dropped()
            return False
        _require_kind(sample, SampleKind.GYRO)

        with self._lock:
            previous_t_ns: Optional[int] = self._gyro.record(sample.t_ns)
            if previous_t_ns is None:
                return False

            dt_ns: int = sample.t_ns - previous_t_ns
            if dt_ns <= 0:
                self._diagnostics["gyro_non_monotonic"] += 1
                self._log_gap(sample.t_ns, "Non-monotonic gyro timestamp", dt_ns)
                return False

            dt_s: float = Time.ns_to_s(dt_ns)
            if dt_s > self._params.max_gyro_dt_s:
                self._diagnostics["gyro_stale_gap"] += 1
                self._log_gap(sample.t_ns, "Large gyro dt", dt_ns)
                return False

            omega_rads: np.ndarray = sample.vector - self._gyro_bias
            delta: Quaternion = Quaternion.from_rotvec(omega_rads * dt_s)
            self._quaternion = (self._quaternion * delta).normalized()
            self._diagnostics["gyro_integrated"] += 1
            attitude: Attitude = self._publish(sample.t_ns)

        self._notify(attitude)
        return True

    def on_accel_sample(self, sample: Optional[Sample]) -> bool:
        """
        Nudge the attitude toward the gravity direction seen by the accel.

        Args:
            sample: Accel sample, or None when the adapter dropped the reading

        Returns:
            True when the attitude was updated
        """
        if sample is None:
            self._count_dropped()
            return False
        _require_kind(sample, SampleKind.ACCEL)

        with self._lock:
            previous_t_ns: Optional[int] = self._accel.record(sample.t_ns)
            if previous_t_ns is None:
                return False

            accel_norm: float = float(np.linalg.norm(sample.vector))
            if not (
                self._params.accel_min_mps2 <= accel_norm <= self._params.accel_max_mps2
            ):
                self._diagnostics["accel_rejected_dynamic"] += 1
                _LOG.debug(
                    "Skipping accel correction, |a| = %.3f m/s^2 outside [%.3f, %.3f]",
                    accel_norm,
                    self._params.accel_min_mps2,
                    self._params.accel_max_mps2,
                )
                return False

            # Measured up direction, expressed in the ground frame
            up_measured: np.ndarray = self._quaternion.rotate(
                sample.vector / accel_norm
            )

            rotation: Optional[tuple[np.ndarray, float]] = Vec3.alignment_rotation(
                up_measured, UP_GROUND
            )
            if rotation is None:
                self._diagnostics["accel_degenerate"] += 1
                return False

            axis_ground: np.ndarray
            angle: float
            axis_ground, angle = rotation

            if self._params.gyro_bias_gain > 0.0:
                self._update_gyro_bias(
                    axis_ground, angle, sample.t_ns - previous_t_ns
                )

            correction: Quaternion = Quaternion.from_axis_angle(
                axis_ground, self._params.fusion_gain * angle
            )
            self._quaternion = (correction * self._quaternion).normalized()
            self._diagnostics["accel_corrected"] += 1
            attitude: Attitude = self._publish(sample.t_ns)

        self._notify(attitude)
        return True

    def _update_gyro_bias(
        self, axis_ground: np.ndarray, angle: float, dt_ns: int
    ) -> None:
        """Integrate the tilt error into the gyro bias estimate.

        Must be called with the lock held, before the correction is applied.
        """
        dt_s: float = Time.ns_to_s(dt_ns)
        if dt_s <= 0.0 or dt_s > self._params.max_gyro_dt_s:
            return

        # Units: rad. Meaning: tilt error as a rotation vector in body axes
        error_body: np.ndarray = self._quaternion.inverse().rotate(axis_ground) * angle

        self._gyro_bias = self._gyro_bias - (
            self._params.gyro_bias_gain * error_body * dt_s
        )

    def _publish(self, t_ns: Optional[int]) -> Attitude:
        """Publish a new attitude snapshot. Must be called with the lock held."""
        self._attitude = Attitude.from_quaternion(self._quaternion, t_ns=t_ns)
        return self._attitude

    def _notify(self, attitude: Attitude) -> None:
        with self._lock:
            subscribers: list[AttitudeCallback] = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(attitude)
            except Exception:
                _LOG.exception("Attitude subscriber %r raised", callback)

    def _count_dropped(self) -> None:
        with self._lock:
            self._diagnostics["samples_dropped"] += 1

    def _log_gap(self, t_ns: int, reason: str, dt_ns: int) -> None:
        """Log a skipped gyro interval, at most once per second of sample time."""
        if (
            self._last_gap_log_t_ns is not None
            and 0 <= t_ns - self._last_gap_log_t_ns < GAP_LOG_PERIOD_NS
        ):
            return
        self._last_gap_log_t_ns = t_ns
        _LOG.debug(
            "%s (%.3fs), skipping integration", reason, Time.ns_to_s(dt_ns)
        )


def _new_diagnostics() -> dict[str, int]:
    return {
        "gyro_integrated": 0,
        "gyro_stale_gap": 0,
        "gyro_non_monotonic": 0,
        "accel_corrected": 0,
        "accel_rejected_dynamic": 0,
        "accel_degenerate": 0,
        "samples_dropped": 0,
    }


def _require_kind(sample: Sample, kind: SampleKind) -> None:
    """Reject samples routed to the wrong channel."""
    if sample.kind is not kind:
        raise ValueError(f"Expected a {kind.value} sample, got {sample.kind.value}")
