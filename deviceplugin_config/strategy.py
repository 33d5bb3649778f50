"""Configuration constants and the set of enabled device list strategies."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping

RESOURCE_NAME_PREFIX = "nvidia.com"
DEFAULT_SHARED_RESOURCE_NAME_SUFFIX = ".shared"
MAX_RESOURCE_NAME_LENGTH = 63

MIG_STRATEGY_NONE = "none"
MIG_STRATEGY_SINGLE = "single"
MIG_STRATEGY_MIXED = "mixed"

DEVICE_LIST_STRATEGY_ENVVAR = "envvar"
DEVICE_LIST_STRATEGY_VOLUME_MOUNTS = "volume-mounts"
DEVICE_LIST_STRATEGY_CDI_ANNOTATIONS = "cdi-annotations"
DEVICE_LIST_STRATEGY_CDI_CRI = "cdi-cri"

DEVICE_ID_STRATEGY_UUID = "uuid"
DEVICE_ID_STRATEGY_INDEX = "index"

DEFAULT_CDI_ANNOTATION_PREFIX = "cdi.k8s.io/"
DEFAULT_NVIDIA_CTK_PATH = "/usr/bin/nvidia-ctk"
DEFAULT_CONTAINER_DRIVER_ROOT = "/driver-root"

_KNOWN_STRATEGIES = (
    DEVICE_LIST_STRATEGY_ENVVAR,
    DEVICE_LIST_STRATEGY_VOLUME_MOUNTS,
    DEVICE_LIST_STRATEGY_CDI_ANNOTATIONS,
    DEVICE_LIST_STRATEGY_CDI_CRI,
)


class DeviceListStrategies(Mapping):
    """Which strategies are used to pass the device list to the container runtime."""

    def __init__(self, enabled: Mapping[str, bool] | None = None) -> None:
        self._enabled = {name: False for name in _KNOWN_STRATEGIES}
        if enabled:
            self._enabled.update(enabled)

    @classmethod
    def from_names(cls, strategies: Iterable[str]) -> "DeviceListStrategies":
        """Build the set from strategy names; unknown names raise ValueError."""
        enabled = {name: False for name in _KNOWN_STRATEGIES}
        for name in strategies:
            if name not in enabled:
                raise ValueError(f"invalid strategy: {name}")
            enabled[name] = True
        return cls(enabled)

    def __getitem__(self, key: str) -> bool:
        return self._enabled[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._enabled)

    def __len__(self) -> int:
        return len(self._enabled)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._enabled!r})"

    def includes(self, strategy: str) -> bool:
        """Whether the given strategy is enabled."""
        return self._enabled.get(strategy, False)

    def any_cdi_enabled(self) -> bool:
        """Whether any enabled strategy requires CDI."""
        return any(on and name.startswith("cdi-") for name, on in self._enabled.items())

    def all_cdi_enabled(self) -> bool:
        """Whether every enabled strategy requires CDI."""
        return all(name.startswith("cdi-") for name, on in self._enabled.items() if on)