################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Host-side IMU processor binding sensor devices to the estimator."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from dataclasses import field
from typing import Callable
from typing import Optional
from typing import Protocol

import numpy as np

from oasis_imu.adapters.accel_adapter import AccelAdapter
from oasis_imu.adapters.gyro_adapter import GyroAdapter
from oasis_imu.adapters.raw_reading import RawReading
from oasis_imu.config.estimator_params import EstimatorParams
from oasis_imu.filter.orientation_estimator import AttitudeCallback
from oasis_imu.filter.orientation_estimator import OrientationEstimator
from oasis_imu.imu_types.sample import SampleKind


_LOG: logging.Logger = logging.getLogger(__name__)


ReadingCallback = Callable[[RawReading], None]
IdCallback = Callable[[str], None]


class SensorOpenError(Exception):
    """Raised by a SensorOpener when a device cannot be opened."""


class SensorChannel(Protocol):
    """An opened sensor device delivering raw readings."""

    def start(self, callback: ReadingCallback) -> None: ...

    def stop(self) -> None: ...


class SensorOpener(Protocol):
    """Capability for opening sensor devices by identifier."""

    def open_gyro(self, sensor_id: str) -> SensorChannel: ...

    def open_accel(self, sensor_id: str) -> SensorChannel: ...


@dataclass
class _Binding:
    """Device binding for one sensor channel."""

    sensor_id: str = ""
    channel: Optional[SensorChannel] = None
    listeners: list[IdCallback] = field(default_factory=list)


class ImuProcessor:
    """
    Bind gyroscope and accelerometer devices to an orientation estimator.

    Setting a sensor identifier closes the current device of that kind and
    opens the new one. When the device cannot be opened the identifier falls
    back to the empty string and the estimator keeps running on whichever
    channel remains live.
    """

    def __init__(
        self,
        opener: SensorOpener,
        params: Optional[EstimatorParams] = None,
        gyro_adapter: Optional[GyroAdapter] = None,
        accel_adapter: Optional[AccelAdapter] = None,
    ) -> None:
        """
        Initialize resources.

        Args:
            opener: Device layer capability used to open sensors
            params: Estimator configuration, defaults when omitted
            gyro_adapter: Gyro unit adapter, defaults when omitted
            accel_adapter: Accel unit adapter, defaults when omitted
        """
        self._opener: SensorOpener = opener
        self._estimator: OrientationEstimator = OrientationEstimator(params=params)
        self._gyro_adapter: GyroAdapter = gyro_adapter or GyroAdapter()
        self._accel_adapter: AccelAdapter = accel_adapter or AccelAdapter()

        self._lock: threading.Lock = threading.Lock()
        self._bindings: dict[SampleKind, _Binding] = {
            SampleKind.GYRO: _Binding(),
            SampleKind.ACCEL: _Binding(),
        }

    @property
    def estimator(self) -> OrientationEstimator:
        return self._estimator

    @property
    def gyro_id(self) -> str:
        """Current gyroscope identifier, empty if no device is open."""
        with self._lock:
            return self._bindings[SampleKind.GYRO].sensor_id

    @gyro_id.setter
    def gyro_id(self, sensor_id: str) -> None:
        self.set_gyro_id(sensor_id)

    @property
    def accel_id(self) -> str:
        """Current accelerometer identifier, empty if no device is open."""
        with self._lock:
            return self._bindings[SampleKind.ACCEL].sensor_id

    @accel_id.setter
    def accel_id(self, sensor_id: str) -> None:
        self.set_accel_id(sensor_id)

    @property
    def rotation(self) -> np.ndarray:
        """Latest rotation w.r.t. the ground frame in angle-axis form."""
        return self._estimator.current_attitude().rotation_vector

    @property
    def rotation_quat(self) -> np.ndarray:
        """Latest rotation w.r.t. the ground frame as a wxyz quaternion."""
        return self._estimator.current_attitude().wxyz

    def set_gyro_id(self, sensor_id: str) -> None:
        """Open the gyroscope with the given identifier."""
        self._bind(SampleKind.GYRO, sensor_id)

    def set_accel_id(self, sensor_id: str) -> None:
        """Open the accelerometer with the given identifier."""
        self._bind(SampleKind.ACCEL, sensor_id)

    def on_gyro_id_changed(self, callback: IdCallback) -> None:
        with self._lock:
            self._bindings[SampleKind.GYRO].listeners.append(callback)

    def on_accel_id_changed(self, callback: IdCallback) -> None:
        with self._lock:
            self._bindings[SampleKind.ACCEL].listeners.append(callback)

    def on_rotation_changed(self, callback: AttitudeCallback) -> Callable[[], None]:
        """Register a callback for attitude changes, returning an unsubscriber."""
        return self._estimator.subscribe(callback)

    def on_device_error(self, kind: SampleKind) -> None:
        """
        Handle a fatal error reported by the device layer for one channel.

        The device is closed and its identifier reset to the empty string.
        """
        _LOG.warning("Sensor error on %s channel, closing device", kind.value)
        self._bind(kind, "")

    def close(self) -> None:
        """Close both devices."""
        self._bind(SampleKind.GYRO, "")
        self._bind(SampleKind.ACCEL, "")

    def _bind(self, kind: SampleKind, sensor_id: str) -> None:
        """
        Replace the device bound to one channel.

        No lock is held while devices are opened, started or stopped. A
        concurrent rebind of the same channel may store its device first, in
        which case that device is displaced and stopped here, so the last
        store wins and no opened device is left running unbound.
        """
        with self._lock:
            binding: _Binding = self._bindings[kind]
            old_id: str = binding.sensor_id
            old_channel: Optional[SensorChannel] = binding.channel
            binding.channel = None
            binding.sensor_id = ""

        if old_channel is not None:
            self._stop(kind, old_id, old_channel)

        channel: Optional[SensorChannel] = None
        if sensor_id:
            channel = self._open(kind, sensor_id)

        if channel is not None:
            # Bind before starting so readings delivered during start() count
            self._store(kind, sensor_id, channel)
            started: bool = self._start(kind, sensor_id, channel)
            with self._lock:
                bound: bool = binding.channel is channel
                if bound and not started:
                    binding.channel = None
                    binding.sensor_id = ""

            # A channel displaced during start() was stopped before it started
            if started != bound:
                self._stop(kind, sensor_id, channel)
            if not (started and bound):
                channel = None

        new_id: str = sensor_id if channel is not None else ""
        with self._lock:
            listeners: list[IdCallback] = list(binding.listeners)

        if new_id != old_id:
            for listener in listeners:
                listener(new_id)

    def _store(self, kind: SampleKind, sensor_id: str, channel: SensorChannel) -> None:
        with self._lock:
            binding: _Binding = self._bindings[kind]
            displaced_id: str = binding.sensor_id
            displaced: Optional[SensorChannel] = binding.channel
            binding.channel = channel
            binding.sensor_id = sensor_id

        if displaced is not None:
            self._stop(kind, displaced_id, displaced)

    def _open(self, kind: SampleKind, sensor_id: str) -> Optional[SensorChannel]:
        try:
            if kind is SampleKind.GYRO:
                return self._opener.open_gyro(sensor_id)
            return self._opener.open_accel(sensor_id)
        except SensorOpenError as exc:
            _LOG.warning("Failed to open %s sensor '%s': %s", kind.value, sensor_id, exc)
            return None

    def _start(self, kind: SampleKind, sensor_id: str, channel: SensorChannel) -> bool:
        try:
            channel.start(self._make_reading_callback(kind, channel))
        except SensorOpenError as exc:
            _LOG.warning(
                "Failed to start %s sensor '%s': %s", kind.value, sensor_id, exc
            )
            return False

        _LOG.info("Opened %s sensor '%s'", kind.value, sensor_id)
        return True

    def _stop(self, kind: SampleKind, sensor_id: str, channel: SensorChannel) -> None:
        channel.stop()
        _LOG.info("Closed %s sensor '%s'", kind.value, sensor_id)

    def _make_reading_callback(
        self, kind: SampleKind, channel: SensorChannel
    ) -> ReadingCallback:
        def on_reading(reading: RawReading) -> None:
            # Ignore late readings from a device that has since been replaced
            with self._lock:
                if self._bindings[kind].channel is not channel:
                    return

            if kind is SampleKind.GYRO:
                self._estimator.on_gyro_sample(self._gyro_adapter.convert(reading))
            else:
                self._estimator.on_accel_sample(self._accel_adapter.convert(reading))

        return on_reading
