"""Replicated (shared) resources and the devices they apply to."""

from __future__ import annotations

import json
import re
import string
from dataclasses import dataclass, field
from typing import Any, Protocol

from deviceplugin_config.resources import ResourceName

_UINT_RE = re.compile(r"[0-9]+")
_MAX_UINT = (1 << 64) - 1
_MAX_INT = (1 << 63) - 1
_HEX = frozenset(string.hexdigits)
_UUID_GROUPS = (8, 4, 4, 4, 12)


class WarningLogger(Protocol):
    """Anything that can emit a warning message."""

    def warning(self, msg: str) -> Any: ...


def _is_uint(text: str) -> bool:
    return bool(_UINT_RE.fullmatch(text)) and int(text) <= _MAX_UINT


def _is_hex(text: str) -> bool:
    return all(ch in _HEX for ch in text)


def _is_uuid(text: str) -> bool:
    """Whether text is a UUID in one of the usual textual forms."""
    if len(text) == 32:
        return _is_hex(text)
    if len(text) == 45:
        if text[:9].lower() != "urn:uuid:":
            return False
        text = text[9:]
    elif len(text) == 38:
        if text[0] != "{" or text[-1] != "}":
            return False
        text = text[1:-1]
    if len(text) != 36:
        return False
    groups = text.split("-")
    return tuple(len(g) for g in groups) == _UUID_GROUPS and all(_is_hex(g) for g in groups)


def _is_json_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class ReplicatedDeviceRef(str):
    """A GPU index, a MIG index ("gpu:mig") or a GPU/MIG UUID."""

    def is_gpu_index(self) -> bool:
        return _is_uint(str(self))

    def is_mig_index(self) -> bool:
        parts = str.split(self, ":", 1)
        return len(parts) == 2 and all(_is_uint(p) for p in parts)

    def is_uuid(self) -> bool:
        return self.is_gpu_uuid() or self.is_mig_uuid()

    def is_gpu_uuid(self) -> bool:
        """True for refs of the form GPU-<uuid>."""
        text = str(self)
        return text.startswith("GPU-") and _is_uuid(text[len("GPU-"):])

    def is_mig_uuid(self) -> bool:
        """True for MIG-<uuid> or MIG-GPU-<uuid>/<gi>/<ci>."""
        text = str(self)
        if not text.startswith("MIG-"):
            return False
        suffix = text[len("MIG-"):]
        if _is_uuid(suffix):
            return True
        parts = suffix.split("/", 2)
        if len(parts) != 3:
            return False
        if not ReplicatedDeviceRef(parts[0]).is_gpu_uuid():
            return False
        return all(_is_uint(p) for p in parts[1:])


def _device_ref(item: Any) -> ReplicatedDeviceRef:
    if item is None:
        return ReplicatedDeviceRef("0")
    if _is_json_int(item) and 0 <= item <= _MAX_UINT:
        return ReplicatedDeviceRef(str(item))
    if isinstance(item, str):
        ref = ReplicatedDeviceRef(item)
        if ref.is_gpu_index() or ref.is_mig_index() or ref.is_uuid():
            return ref
    raise ValueError(f"unsupported type for device in devices list: {item!r}")


@dataclass
class ReplicatedDevices:
    """The devices to replicate: all of them, a count, or an explicit list.

    Only one of the three should be set at a time.
    """

    all: bool = False
    count: int = 0
    refs: list[ReplicatedDeviceRef] | None = None

    @classmethod
    def from_json(cls, value: Any) -> "ReplicatedDevices":
        if isinstance(value, str):
            if value != "all":
                raise ValueError(
                    f"devices set as '{value}' but the only valid string input is 'all'"
                )
            return cls(all=True)
        if value is None:
            raise ValueError("devices set as '' but the only valid string input is 'all'")
        if _is_json_int(value) and value <= _MAX_INT:
            if value <= 0:
                raise ValueError(f"devices set as '{value}' but a count of devices must be > 0")
            return cls(count=value)
        if isinstance(value, list):
            return cls(refs=[_device_ref(item) for item in value])
        raise ValueError(f"unrecognized type for devices spec: {json.dumps(value)}")

    @classmethod
    def parse(cls, text: str) -> "ReplicatedDevices":
        return cls.from_json(json.loads(text))

    def to_json(self) -> Any:
        if self.all:
            return "all"
        if self.count > 0:
            return self.count
        if self.refs is not None:
            return [str(ref) for ref in self.refs]
        raise ValueError(f"unmarshallable ReplicatedDevices struct: {self!r}")


@dataclass
class ReplicatedResource:
    """A resource to be replicated."""

    name: ResourceName
    devices: ReplicatedDevices
    replicas: int
    rename: ResourceName = ResourceName("")

    @classmethod
    def from_json(cls, data: Any) -> "ReplicatedResource":
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"replicated resource must be an object: {data!r}")
        if "name" not in data:
            raise ValueError("no resource name specified")
        name = ResourceName.from_json(data["name"])
        devices = ReplicatedDevices.from_json(data.get("devices", "all"))
        if "replicas" not in data:
            raise ValueError("no replicas specified")
        replicas = data["replicas"]
        if not _is_json_int(replicas) or abs(replicas) > _MAX_INT:
            raise ValueError(f"invalid number of replicas: {replicas!r}")
        if replicas < 2:
            raise ValueError("number of replicas must be >= 2")
        rename = ResourceName.from_json(data["rename"]) if "rename" in data else ResourceName("")
        return cls(name=name, devices=devices, replicas=replicas, rename=rename)

    @classmethod
    def parse(cls, text: str) -> "ReplicatedResource":
        return cls.from_json(json.loads(text))

    def to_json(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": str(self.name)}
        if self.rename:
            result["rename"] = str(self.rename)
        result["devices"] = self.devices.to_json()
        result["replicas"] = self.replicas
        return result


def _json_bool(data: dict[str, Any], key: str) -> bool:
    value = data.get(key, False)
    if not isinstance(value, bool):
        raise ValueError(f"'{key}' must be a boolean: {value!r}")
    return value


@dataclass
class ReplicatedResources:
    """Generic options for replicating devices."""

    rename_by_default: bool = False
    fail_requests_greater_than_one: bool = False
    resources: list[ReplicatedResource] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any) -> "ReplicatedResources":
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"replicated resources must be an object: {data!r}")
        rename_by_default = _json_bool(data, "renameByDefault")
        fail_requests = _json_bool(data, "failRequestsGreaterThanOne")
        if "resources" not in data:
            raise ValueError("no resources specified")
        raw = data["resources"]
        if raw is None:
            raw = []
        if not isinstance(raw, list):
            raise ValueError(f"'resources' must be a list: {raw!r}")
        resources = [ReplicatedResource.from_json(item) for item in raw]
        if not resources:
            raise ValueError("no resources specified")
        if rename_by_default:
            for resource in resources:
                if not resource.rename:
                    resource.rename = resource.name.default_shared_rename()
        return cls(
            rename_by_default=rename_by_default,
            fail_requests_greater_than_one=fail_requests,
            resources=resources,
        )

    @classmethod
    def parse(cls, text: str) -> "ReplicatedResources":
        return cls.from_json(json.loads(text))

    def to_json(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.rename_by_default:
            result["renameByDefault"] = True
        if self.fail_requests_greater_than_one:
            result["failRequestsGreaterThanOne"] = True
        if self.resources:
            result["resources"] = [r.to_json() for r in self.resources]
        return result

    def is_replicated(self) -> bool:
        """Whether any resource asks for more than one replica."""
        return any(r.replicas > 1 for r in self.resources)

    def disable_resource_renaming(self, logger: WarningLogger, sharing_id: str) -> None:
        """Reset custom renames and device selections, warning about each kind."""
        sets_non_default_rename = False
        sets_devices = False
        for resource in self.resources:
            if not self.rename_by_default and resource.rename:
                sets_non_default_rename = True
                resource.rename = ResourceName("")
            default_rename = resource.name.default_shared_rename()
            if self.rename_by_default and resource.rename != default_rename:
                sets_non_default_rename = True
                resource.rename = default_rename
            if not resource.devices.all:
                sets_devices = True
                resource.devices = ReplicatedDevices(all=True)
        if sets_non_default_rename:
            logger.warning(
                f"Setting the 'rename' field in sharing.{sharing_id}.resources "
                "is not yet supported in the config. Ignoring..."
            )
        if sets_devices:
            logger.warning(
                f"Customizing the 'devices' field in sharing.{sharing_id}.resources "
                "is not yet supported in the config. Ignoring..."
            )