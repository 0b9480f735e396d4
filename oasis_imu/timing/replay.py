################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Chronological replay of recorded gyro and accel streams."""

from __future__ import annotations

import heapq
from typing import Iterable
from typing import Iterator
from typing import Optional

from oasis_imu.filter.orientation_estimator import OrientationEstimator
from oasis_imu.imu_types.attitude import Attitude
from oasis_imu.imu_types.sample import Sample
from oasis_imu.imu_types.sample import SampleKind


# Dispatch order for samples sharing a timestamp
_KIND_PRIORITY: dict[SampleKind, int] = {
    SampleKind.GYRO: 0,
    SampleKind.ACCEL: 1,
}


def merge_chronological(
    gyro_samples: Iterable[Optional[Sample]],
    accel_samples: Iterable[Optional[Sample]],
) -> Iterator[Sample]:
    """
    Merge two individually time-ordered streams into one ordered stream.

    Dropped readings (None) are skipped. Samples sharing a timestamp are
    yielded gyro first, so the integration step precedes the correction.
    Within one stream the recorded order is preserved.
    """

    def keyed(
        samples: Iterable[Optional[Sample]],
    ) -> Iterator[tuple[int, int, Sample]]:
        for sample in samples:
            if sample is not None:
                yield sample.t_ns, _KIND_PRIORITY[sample.kind], sample

    merged: Iterator[tuple[int, int, Sample]] = heapq.merge(
        keyed(gyro_samples), keyed(accel_samples), key=lambda item: item[:2]
    )
    for _t_ns, _priority, sample in merged:
        yield sample


def replay(
    estimator: OrientationEstimator,
    gyro_samples: Iterable[Optional[Sample]],
    accel_samples: Iterable[Optional[Sample]],
) -> Attitude:
    """
    Feed recorded streams through an estimator in chronological order.

    Returns:
        The attitude after the last sample
    """
    for sample in merge_chronological(gyro_samples, accel_samples):
        if sample.kind is SampleKind.GYRO:
            estimator.on_gyro_sample(sample)
        else:
            estimator.on_accel_sample(sample)

    return estimator.current_attitude()
