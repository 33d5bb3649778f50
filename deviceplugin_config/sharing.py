"""Sharing strategies for devices: time-slicing and MPS."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from deviceplugin_config.replicas import ReplicatedResources


class SharingStrategy(str, enum.Enum):
    MPS = "mps"
    NONE = "none"
    TIME_SLICING = "time-slicing"


@dataclass
class Sharing:
    """The set of supported sharing strategies and their replicated resources."""

    time_slicing: ReplicatedResources = field(default_factory=ReplicatedResources)
    mps: ReplicatedResources | None = None

    @classmethod
    def from_json(cls, data: Any) -> "Sharing":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError(f"sharing must be an object: {data!r}")
        time_slicing = data.get("timeSlicing")
        mps = data.get("mps")
        return cls(
            time_slicing=(
                ReplicatedResources.from_json(time_slicing)
                if time_slicing is not None
                else ReplicatedResources()
            ),
            mps=ReplicatedResources.from_json(mps) if mps is not None else None,
        )

    def to_json(self) -> dict[str, Any]:
        result: dict[str, Any] = {"timeSlicing": self.time_slicing.to_json()}
        if self.mps is not None:
            result["mps"] = self.mps.to_json()
        return result

    def sharing_strategy(self) -> SharingStrategy:
        """The active sharing strategy."""
        if self.mps is not None and self.mps.is_replicated():
            return SharingStrategy.MPS
        if self.time_slicing.is_replicated():
            return SharingStrategy.TIME_SLICING
        return SharingStrategy.NONE

    def replicated_resources(self) -> ReplicatedResources:
        """The resources of the active strategy: MPS when set, else time-slicing."""
        if self.mps is not None:
            return self.mps
        return self.time_slicing