################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Tests for the orientation estimator."""

from __future__ import annotations

import math
import random
import threading

import numpy as np
import pytest

from oasis_imu.config.estimator_params import EstimatorParams
from oasis_imu.filter.channel_state import ChannelPhase
from oasis_imu.filter.orientation_estimator import OrientationEstimator
from oasis_imu.imu_types.attitude import Attitude
from oasis_imu.imu_types.sample import Sample
from oasis_imu.imu_types.sample import SampleKind
from oasis_imu.math_utils.quat import Quaternion
from oasis_imu.math_utils.units import PhysicalConstants
from oasis_imu.math_utils.units import Time


G: float = PhysicalConstants.GRAVITY_MPS2
GRAVITY: np.ndarray = np.array([0.0, 0.0, G])


def _gyro(t_s: float, omega: list[float]) -> Sample:
    return Sample.gyro(Time.s_to_ns(t_s), omega)


def _accel(t_s: float, accel: np.ndarray) -> Sample:
    return Sample.accel(Time.s_to_ns(t_s), accel)


def _assert_unit(attitude: Attitude) -> None:
    assert abs(attitude.quaternion.norm() - 1.0) < 1e-6


def _tilt_rad(attitude: Attitude) -> float:
    return attitude.quaternion.angle_to(Quaternion.identity())


def test_starts_at_identity() -> None:
    estimator: OrientationEstimator = OrientationEstimator()
    attitude: Attitude = estimator.current_attitude()
    assert attitude.quaternion.almost_equal(Quaternion.identity())
    assert np.array_equal(attitude.rotation_vector, np.zeros(3))
    assert estimator.gyro_channel.phase is ChannelPhase.UNINITIALIZED
    assert estimator.accel_channel.phase is ChannelPhase.UNINITIALIZED


def test_constant_rate_integrates_quarter_turn() -> None:
    """pi/2 rad/s about Z for 1 s yields a 90 degree yaw."""
    estimator: OrientationEstimator = OrientationEstimator()

    # The first sample only primes the channel, so 11 samples span 1 s
    for step in range(11):
        estimator.on_gyro_sample(_gyro(0.1 * step, [0.0, 0.0, math.pi / 2]))

    attitude: Attitude = estimator.current_attitude()
    expected: Quaternion = Quaternion.from_axis_angle(
        np.array([0.0, 0.0, 1.0]), math.pi / 2
    )
    assert attitude.quaternion.almost_equal(expected, atol=1e-6)
    assert math.isclose(attitude.angle_rad, math.pi / 2, abs_tol=1e-6)
    assert np.allclose(attitude.axis, [0.0, 0.0, 1.0])
    assert estimator.diagnostics["gyro_integrated"] == 10


def test_zero_rate_never_changes_attitude() -> None:
    estimator: OrientationEstimator = OrientationEstimator()
    start: Quaternion = Quaternion.from_rotvec(np.array([0.1, -0.2, 0.3]))
    estimator.reset(start)

    t_s: float = 0.0
    rng: random.Random = random.Random(3)
    for _ in range(200):
        t_s += rng.uniform(0.001, 0.2)
        estimator.on_gyro_sample(_gyro(t_s, [0.0, 0.0, 0.0]))

    assert estimator.current_attitude().quaternion.almost_equal(start, atol=1e-9)


def test_first_gyro_sample_is_noop() -> None:
    estimator: OrientationEstimator = OrientationEstimator()
    assert not estimator.on_gyro_sample(_gyro(1.0, [5.0, 5.0, 5.0]))
    assert estimator.current_attitude().quaternion.almost_equal(
        Quaternion.identity()
    )
    assert estimator.gyro_channel.phase is ChannelPhase.TRACKING
    assert estimator.gyro_channel.last_t_ns == Time.s_to_ns(1.0)


def test_first_accel_sample_is_noop() -> None:
    estimator: OrientationEstimator = OrientationEstimator(fusion_gain=1.0)
    tilted: Quaternion = Quaternion.from_rotvec(np.array([0.2, 0.0, 0.0]))
    estimator.reset(tilted)

    assert not estimator.on_accel_sample(_accel(0.0, GRAVITY))
    assert estimator.current_attitude().quaternion.almost_equal(tilted)
    assert estimator.accel_channel.is_live


def test_drift_correction_converges() -> None:
    estimator: OrientationEstimator = OrientationEstimator(fusion_gain=0.1)
    estimator.reset(Quaternion.from_rotvec(np.array([0.15, -0.1, 0.0])))

    estimator.on_accel_sample(_accel(0.0, GRAVITY))
    previous: float = _tilt_rad(estimator.current_attitude())
    for step in range(1, 101):
        assert estimator.on_accel_sample(_accel(0.01 * step, GRAVITY))
        error: float = _tilt_rad(estimator.current_attitude())
        assert error < previous
        previous = error

    assert previous < 1e-4


def test_correction_scales_angle_by_gain() -> None:
    estimator: OrientationEstimator = OrientationEstimator(fusion_gain=0.25)
    estimator.reset(Quaternion.from_rotvec(np.array([0.4, 0.0, 0.0])))
    estimator.on_accel_sample(_accel(0.0, GRAVITY))
    estimator.on_accel_sample(_accel(0.1, GRAVITY))
    assert math.isclose(_tilt_rad(estimator.current_attitude()), 0.3, abs_tol=1e-9)


def test_correction_leaves_yaw_alone() -> None:
    estimator: OrientationEstimator = OrientationEstimator(fusion_gain=1.0)
    yaw: Quaternion = Quaternion.from_axis_angle(np.array([0.0, 0.0, 1.0]), 1.0)
    estimator.reset(yaw)
    estimator.on_accel_sample(_accel(0.0, GRAVITY))
    estimator.on_accel_sample(_accel(0.1, GRAVITY))
    assert estimator.current_attitude().quaternion.almost_equal(yaw)


def test_dynamic_motion_is_rejected() -> None:
    estimator: OrientationEstimator = OrientationEstimator(fusion_gain=0.5)
    tilted: Quaternion = Quaternion.from_rotvec(np.array([0.0, 0.3, 0.0]))
    estimator.reset(tilted)

    estimator.on_accel_sample(_accel(0.0, GRAVITY))
    assert not estimator.on_accel_sample(_accel(0.1, 2.0 * GRAVITY))
    assert estimator.current_attitude().quaternion.almost_equal(tilted)
    assert estimator.diagnostics["accel_rejected_dynamic"] == 1


def test_free_fall_is_rejected() -> None:
    estimator: OrientationEstimator = OrientationEstimator()
    estimator.on_accel_sample(_accel(0.0, GRAVITY))
    assert not estimator.on_accel_sample(_accel(0.1, np.zeros(3)))


def test_upside_down_is_degenerate_noop() -> None:
    estimator: OrientationEstimator = OrientationEstimator(fusion_gain=0.5)
    estimator.on_accel_sample(_accel(0.0, GRAVITY))
    assert not estimator.on_accel_sample(_accel(0.1, -GRAVITY))
    assert estimator.current_attitude().quaternion.almost_equal(
        Quaternion.identity()
    )
    assert estimator.diagnostics["accel_degenerate"] == 1


def test_stale_gap_is_skipped() -> None:
    estimator: OrientationEstimator = OrientationEstimator()
    omega: list[float] = [0.0, 0.0, 1.0]

    t_s: float = 0.0
    for _ in range(10):
        estimator.on_gyro_sample(_gyro(t_s, omega))
        t_s += 0.01
    before: Attitude = estimator.current_attitude()

    # 10 s gap after a 10 ms stream
    t_s += 10.0
    assert not estimator.on_gyro_sample(_gyro(t_s, omega))
    assert estimator.current_attitude().quaternion.almost_equal(before.quaternion)
    assert estimator.diagnostics["gyro_stale_gap"] == 1

    # Integration resumes from the resynchronized timestamp
    assert estimator.on_gyro_sample(_gyro(t_s + 0.01, omega))
    assert math.isclose(
        estimator.current_attitude().angle_rad, 0.1, abs_tol=1e-6
    )


def test_non_monotonic_timestamp_resyncs() -> None:
    estimator: OrientationEstimator = OrientationEstimator()
    estimator.on_gyro_sample(_gyro(1.0, [1.0, 0.0, 0.0]))
    assert not estimator.on_gyro_sample(_gyro(0.5, [1.0, 0.0, 0.0]))
    assert not estimator.on_gyro_sample(_gyro(0.5, [1.0, 0.0, 0.0]))
    assert estimator.diagnostics["gyro_non_monotonic"] == 2
    assert estimator.gyro_channel.last_t_ns == Time.s_to_ns(0.5)
    assert estimator.current_attitude().angle_rad == 0.0


def test_dropped_samples_are_counted() -> None:
    estimator: OrientationEstimator = OrientationEstimator()
    assert not estimator.on_gyro_sample(None)
    assert not estimator.on_accel_sample(None)
    assert estimator.diagnostics["samples_dropped"] == 2
    assert estimator.gyro_channel.phase is ChannelPhase.UNINITIALIZED


def test_wrong_sample_kind_raises() -> None:
    estimator: OrientationEstimator = OrientationEstimator()
    with pytest.raises(ValueError):
        estimator.on_gyro_sample(_accel(0.0, GRAVITY))
    with pytest.raises(ValueError):
        estimator.on_accel_sample(_gyro(0.0, [0.0, 0.0, 0.0]))


def test_unit_norm_under_random_input() -> None:
    estimator: OrientationEstimator = OrientationEstimator(fusion_gain=0.3)
    rng: np.random.Generator = np.random.default_rng(7)

    t_s: float = 0.0
    for _ in range(2000):
        t_s += float(rng.uniform(0.0005, 0.03))
        if rng.random() < 0.7:
            estimator.on_gyro_sample(_gyro(t_s, list(rng.normal(0.0, 3.0, 3))))
        else:
            accel: np.ndarray = GRAVITY + rng.normal(0.0, 2.0, 3)
            estimator.on_accel_sample(_accel(t_s, accel))
        _assert_unit(estimator.current_attitude())


def test_channel_cadence_independence() -> None:
    """Arbitrary interleaving tracks chronological processing."""
    params: EstimatorParams = EstimatorParams(fusion_gain=0.05)
    omega: list[float] = [0.05, -0.03, 0.02]

    gyro_samples: list[Sample] = [_gyro(0.01 * i, omega) for i in range(501)]
    accel_samples: list[Sample] = [
        _accel(0.1 * i + 0.005, GRAVITY) for i in range(51)
    ]

    chronological: OrientationEstimator = OrientationEstimator(params=params)
    events: list[Sample] = sorted(gyro_samples + accel_samples, key=lambda s: s.t_ns)
    for sample in events:
        if sample.kind is SampleKind.GYRO:
            chronological.on_gyro_sample(sample)
        else:
            chronological.on_accel_sample(sample)

    # Deliver each accel sample late, after a random number of extra gyro
    # samples, while keeping each channel in order
    shuffled: OrientationEstimator = OrientationEstimator(params=params)
    rng: random.Random = random.Random(11)
    gyro_iter: int = 0
    for accel_sample in accel_samples:
        lag: int = rng.randint(0, 5)
        while (
            gyro_iter < len(gyro_samples)
            and gyro_samples[gyro_iter].t_ns <= accel_sample.t_ns + lag * 10_000_000
        ):
            shuffled.on_gyro_sample(gyro_samples[gyro_iter])
            gyro_iter += 1
        shuffled.on_accel_sample(accel_sample)
    for sample in gyro_samples[gyro_iter:]:
        shuffled.on_gyro_sample(sample)

    a: Attitude = chronological.current_attitude()
    b: Attitude = shuffled.current_attitude()
    assert a.quaternion.angle_to(b.quaternion) < 0.01


def test_subscribers_notified_outside_lock() -> None:
    estimator: OrientationEstimator = OrientationEstimator()
    received: list[Attitude] = []

    def on_attitude(attitude: Attitude) -> None:
        # Reentrant read must not deadlock
        assert estimator.current_attitude() is attitude
        received.append(attitude)

    unsubscribe = estimator.subscribe(on_attitude)
    estimator.on_gyro_sample(_gyro(0.0, [0.0, 0.0, 1.0]))
    estimator.on_gyro_sample(_gyro(0.1, [0.0, 0.0, 1.0]))
    assert len(received) == 1
    assert received[0].t_ns == Time.s_to_ns(0.1)

    unsubscribe()
    estimator.on_gyro_sample(_gyro(0.2, [0.0, 0.0, 1.0]))
    assert len(received) == 1


def test_raising_subscriber_does_not_break_update() -> None:
    estimator: OrientationEstimator = OrientationEstimator()
    received: list[Attitude] = []

    def broken(attitude: Attitude) -> None:
        raise RuntimeError("boom")

    estimator.subscribe(broken)
    estimator.subscribe(received.append)
    estimator.on_gyro_sample(_gyro(0.0, [1.0, 0.0, 0.0]))
    assert estimator.on_gyro_sample(_gyro(0.1, [1.0, 0.0, 0.0]))
    assert len(received) == 1


def test_reset_restores_uninitialized_channels() -> None:
    estimator: OrientationEstimator = OrientationEstimator()
    estimator.on_gyro_sample(_gyro(0.0, [1.0, 0.0, 0.0]))
    estimator.on_gyro_sample(_gyro(0.1, [1.0, 0.0, 0.0]))
    estimator.on_accel_sample(_accel(0.1, GRAVITY))

    estimator.reset()
    assert estimator.current_attitude().quaternion.almost_equal(
        Quaternion.identity()
    )
    assert estimator.gyro_channel.phase is ChannelPhase.UNINITIALIZED
    assert estimator.accel_channel.phase is ChannelPhase.UNINITIALIZED


def test_fusion_gain_argument_overrides_params() -> None:
    estimator: OrientationEstimator = OrientationEstimator(
        0.3, params=EstimatorParams(fusion_gain=0.1, max_gyro_dt_s=0.2)
    )
    assert estimator.fusion_gain == 0.3
    assert estimator.params.max_gyro_dt_s == 0.2


def test_gyro_bias_estimation_reduces_drift() -> None:
    bias: list[float] = [0.02, 0.0, 0.0]

    def run(bias_gain: float) -> tuple[float, np.ndarray]:
        estimator: OrientationEstimator = OrientationEstimator(
            params=EstimatorParams(fusion_gain=0.02, gyro_bias_gain=bias_gain)
        )
        for step in range(6001):
            t_s: float = 0.01 * step
            estimator.on_gyro_sample(_gyro(t_s, bias))
            if step % 10 == 5:
                estimator.on_accel_sample(_accel(t_s, GRAVITY))
        return _tilt_rad(estimator.current_attitude()), estimator.gyro_bias

    tilt_plain: float
    tilt_plain, _ = run(0.0)
    tilt_bias: float
    estimated_bias: np.ndarray
    tilt_bias, estimated_bias = run(0.5)

    assert tilt_bias < tilt_plain
    assert estimated_bias[0] > 0.0


def test_concurrent_channels_keep_unit_norm() -> None:
    estimator: OrientationEstimator = OrientationEstimator(fusion_gain=0.2)

    def feed_gyro() -> None:
        for step in range(2000):
            estimator.on_gyro_sample(_gyro(0.001 * step, [0.5, -0.3, 0.2]))

    def feed_accel() -> None:
        for step in range(500):
            estimator.on_accel_sample(_accel(0.004 * step, GRAVITY))

    threads: list[threading.Thread] = [
        threading.Thread(target=feed_gyro),
        threading.Thread(target=feed_accel),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    _assert_unit(estimator.current_attitude())
    diagnostics: dict[str, int] = estimator.diagnostics
    assert diagnostics["gyro_integrated"] == 1999
    assert estimator.gyro_channel.sample_count == 2000
    assert estimator.accel_channel.sample_count == 500
