"""Command-line flags shared by the device plugin and feature discovery."""

from __future__ import annotations

import datetime
import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Callable

from deviceplugin_config.duration import Duration


def parse_device_list_strategy(value: Any) -> list[str]:
    """Accept a single strategy name or a list of names."""
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return list(value)
    raise ValueError(f"invalid deviceListStrategy: {json.dumps(value, default=str)}")


@dataclass(frozen=True)
class CliFlag:
    """A command-line flag definition: its names (first is primary) and default."""

    names: tuple[str, ...]
    default: Any = None

    def __post_init__(self) -> None:
        names = (self.names,) if isinstance(self.names, str) else tuple(self.names)
        if not names:
            raise ValueError("a flag needs at least one name")
        object.__setattr__(self, "names", names)


class CliContext:
    """Values given on the command line, resolved against flag definitions."""

    def __init__(
        self,
        flags: Iterable[CliFlag] = (),
        values: Mapping[str, Any] | None = None,
    ) -> None:
        self._flags = list(flags)
        self._values = dict(values or {})

    def _names(self, name: str) -> tuple[CliFlag | None, tuple[str, ...]]:
        for flag in self._flags:
            if name in flag.names:
                return flag, flag.names
        return None, (name,)

    def is_set(self, name: str) -> bool:
        """Whether the flag, under any of its names, was given explicitly."""
        _, names = self._names(name)
        return any(n in self._values for n in names)

    def value(self, name: str) -> Any:
        """The given value of the flag, else its default, else None."""
        flag, names = self._names(name)
        for n in names:
            if n in self._values:
                return self._values[n]
        return flag.default if flag is not None else None


def _as_object(data: Any, what: str) -> dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{what} must be an object: {data!r}")
    return data


def _opt_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string: {value!r}")
    return value


def _opt_bool(data: dict[str, Any], key: str) -> bool | None:
    value = data.get(key)
    if value is not None and not isinstance(value, bool):
        raise ValueError(f"'{key}' must be a boolean: {value!r}")
    return value


@dataclass
class PluginCommandLineFlags:
    """Flags specific to the device plugin."""

    pass_device_specs: bool | None = None
    device_list_strategy: list[str] | None = None
    device_id_strategy: str | None = None
    cdi_annotation_prefix: str | None = None
    nvidia_ctk_path: str | None = None
    container_driver_root: str | None = None

    @classmethod
    def from_json(cls, data: Any) -> "PluginCommandLineFlags":
        data = _as_object(data, "plugin flags")
        strategy = data.get("deviceListStrategy")
        return cls(
            pass_device_specs=_opt_bool(data, "passDeviceSpecs"),
            device_list_strategy=(
                parse_device_list_strategy(strategy) if strategy is not None else None
            ),
            device_id_strategy=_opt_str(data, "deviceIDStrategy"),
            cdi_annotation_prefix=_opt_str(data, "cdiAnnotationPrefix"),
            nvidia_ctk_path=_opt_str(data, "nvidiaCTKPath"),
            container_driver_root=_opt_str(data, "containerDriverRoot"),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "passDeviceSpecs": self.pass_device_specs,
            "deviceListStrategy": (
                list(self.device_list_strategy)
                if self.device_list_strategy is not None
                else None
            ),
            "deviceIDStrategy": self.device_id_strategy,
            "cdiAnnotationPrefix": self.cdi_annotation_prefix,
            "nvidiaCTKPath": self.nvidia_ctk_path,
            "containerDriverRoot": self.container_driver_root,
        }


@dataclass
class GFDCommandLineFlags:
    """Flags specific to GPU feature discovery."""

    oneshot: bool | None = None
    no_timestamp: bool | None = None
    sleep_interval: Duration | None = None
    output_file: str | None = None
    machine_type_file: str | None = None

    @classmethod
    def from_json(cls, data: Any) -> "GFDCommandLineFlags":
        data = _as_object(data, "gfd flags")
        interval = data.get("sleepInterval")
        return cls(
            oneshot=_opt_bool(data, "oneshot"),
            no_timestamp=_opt_bool(data, "noTimestamp"),
            sleep_interval=Duration.from_json(interval) if interval is not None else None,
            output_file=_opt_str(data, "outputFile"),
            machine_type_file=_opt_str(data, "machineTypeFile"),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "oneshot": self.oneshot,
            "noTimestamp": self.no_timestamp,
            "sleepInterval": (
                self.sleep_interval.to_json() if self.sleep_interval is not None else None
            ),
            "outputFile": self.output_file,
            "machineTypeFile": self.machine_type_file,
        }


def _cli_str(value: Any) -> str:
    return "" if value is None else str(value)


def _cli_bool(value: Any) -> bool:
    return False if value is None else bool(value)


def _cli_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value]


def _cli_duration(value: Any) -> Duration:
    if value is None:
        return Duration(0)
    if isinstance(value, datetime.timedelta):
        micros = (value.days * 86_400 + value.seconds) * 1_000_000 + value.microseconds
        return Duration(micros * 1_000)
    return Duration.from_json(value)


_Converter = Callable[[Any], Any]

_COMMON: dict[str, tuple[str, _Converter]] = {
    "mig-strategy": ("mig_strategy", _cli_str),
    "fail-on-init-error": ("fail_on_init_error", _cli_bool),
    "mps-root": ("mps_root", _cli_str),
    "driver-root": ("nvidia_driver_root", _cli_str),
    "nvidia-driver-root": ("nvidia_driver_root", _cli_str),
    "dev-root": ("nvidia_dev_root", _cli_str),
    "nvidia-dev-root": ("nvidia_dev_root", _cli_str),
    "gds-enabled": ("gds_enabled", _cli_bool),
    "mofed-enabled": ("mofed_enabled", _cli_bool),
    "use-node-feature-api": ("use_node_feature_api", _cli_bool),
    "device-discovery-strategy": ("device_discovery_strategy", _cli_str),
}

_PLUGIN: dict[str, tuple[str, _Converter]] = {
    "pass-device-specs": ("pass_device_specs", _cli_bool),
    "device-list-strategy": ("device_list_strategy", _cli_list),
    "device-id-strategy": ("device_id_strategy", _cli_str),
    "cdi-annotation-prefix": ("cdi_annotation_prefix", _cli_str),
    "nvidia-cdi-hook-path": ("nvidia_ctk_path", _cli_str),
    "nvidia-ctk-path": ("nvidia_ctk_path", _cli_str),
    "container-driver-root": ("container_driver_root", _cli_str),
}

_GFD: dict[str, tuple[str, _Converter]] = {
    "oneshot": ("oneshot", _cli_bool),
    "output-file": ("output_file", _cli_str),
    "sleep-interval": ("sleep_interval", _cli_duration),
    "no-timestamp": ("no_timestamp", _cli_bool),
    "machine-type-file": ("machine_type_file", _cli_str),
}


def _update(target: Any, entry: tuple[str, _Converter], context: CliContext, name: str) -> None:
    attr, convert = entry
    if context.is_set(name) or getattr(target, attr) is None:
        setattr(target, attr, convert(context.value(name)))


@dataclass
class Flags:
    """All flags that configure the device plugin and feature discovery."""

    mig_strategy: str | None = None
    fail_on_init_error: bool | None = None
    mps_root: str | None = None
    nvidia_driver_root: str | None = None
    nvidia_dev_root: str | None = None
    gds_enabled: bool | None = None
    mofed_enabled: bool | None = None
    use_node_feature_api: bool | None = None
    device_discovery_strategy: str | None = None
    plugin: PluginCommandLineFlags | None = None
    gfd: GFDCommandLineFlags | None = None

    @classmethod
    def from_json(cls, data: Any) -> "Flags":
        data = _as_object(data, "flags")
        plugin = data.get("plugin")
        gfd = data.get("gfd")
        return cls(
            mig_strategy=_opt_str(data, "migStrategy"),
            fail_on_init_error=_opt_bool(data, "failOnInitError"),
            mps_root=_opt_str(data, "mpsRoot"),
            nvidia_driver_root=_opt_str(data, "nvidiaDriverRoot"),
            nvidia_dev_root=_opt_str(data, "nvidiaDevRoot"),
            gds_enabled=_opt_bool(data, "gdsEnabled"),
            mofed_enabled=_opt_bool(data, "mofedEnabled"),
            use_node_feature_api=_opt_bool(data, "useNodeFeatureAPI"),
            device_discovery_strategy=_opt_str(data, "deviceDiscoveryStrategy"),
            plugin=PluginCommandLineFlags.from_json(plugin) if plugin is not None else None,
            gfd=GFDCommandLineFlags.from_json(gfd) if gfd is not None else None,
        )

    @classmethod
    def parse(cls, text: str) -> "Flags":
        return cls.from_json(json.loads(text))

    def to_json(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "migStrategy": self.mig_strategy,
            "failOnInitError": self.fail_on_init_error,
        }
        if self.mps_root is not None:
            result["mpsRoot"] = self.mps_root
        if self.nvidia_driver_root is not None:
            result["nvidiaDriverRoot"] = self.nvidia_driver_root
        if self.nvidia_dev_root is not None:
            result["nvidiaDevRoot"] = self.nvidia_dev_root
        result["gdsEnabled"] = self.gds_enabled
        result["mofedEnabled"] = self.mofed_enabled
        result["useNodeFeatureAPI"] = self.use_node_feature_api
        result["deviceDiscoveryStrategy"] = self.device_discovery_strategy
        if self.plugin is not None:
            result["plugin"] = self.plugin.to_json()
        if self.gfd is not None:
            result["gfd"] = self.gfd.to_json()
        return result

    def update_from_cli_flags(self, context: CliContext, flags: Iterable[CliFlag]) -> None:
        """Take values from flags given explicitly, or fill fields still unset."""
        for flag in flags:
            for name in flag.names:
                if self.plugin is None:
                    self.plugin = PluginCommandLineFlags()
                if self.gfd is None:
                    self.gfd = GFDCommandLineFlags()
                for target, table in ((self, _COMMON), (self.plugin, _PLUGIN), (self.gfd, _GFD)):
                    entry = table.get(name)
                    if entry is not None:
                        _update(target, entry, context, name)