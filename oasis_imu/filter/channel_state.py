################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Per-channel tracking state for the orientation estimator."""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import replace
from enum import Enum
from typing import Optional


class ChannelPhase(Enum):
    """Lifecycle of a sensor channel inside the estimator."""

    # No sample seen since construction or reset
    UNINITIALIZED = "uninitialized"

    # At least one sample seen, terminal while the estimator exists
    TRACKING = "tracking"


@dataclass
class ChannelState:
    """Mutable state for one sensor channel."""

    # Timestamp of the last sample in nanoseconds, or None before the first
    last_t_ns: Optional[int] = None

    # Number of samples received, including skipped ones
    sample_count: int = 0

    @property
    def phase(self) -> ChannelPhase:
        """Return the channel phase derived from the last timestamp."""
        if self.last_t_ns is None:
            return ChannelPhase.UNINITIALIZED
        return ChannelPhase.TRACKING

    @property
    def is_live(self) -> bool:
        """Return True once the channel has delivered a sample."""
        return self.last_t_ns is not None

    def record(self, t_ns: int) -> Optional[int]:
        """Record a sample timestamp and return the previous one."""
        previous: Optional[int] = self.last_t_ns
        self.last_t_ns = t_ns
        self.sample_count += 1
        return previous

    def snapshot(self) -> ChannelState:
        """Return a detached copy for readers outside the estimator."""
        return replace(self)
