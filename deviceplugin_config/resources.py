"""Resource names, name patterns and the GPU/MIG resource lists."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from deviceplugin_config.strategy import (
    DEFAULT_SHARED_RESOURCE_NAME_SUFFIX,
    MAX_RESOURCE_NAME_LENGTH,
    RESOURCE_NAME_PREFIX,
)

_DNS1123_LABEL = r"[a-z0-9]([-a-z0-9]*[a-z0-9])?"
_DNS1123_SUBDOMAIN = _DNS1123_LABEL + r"(\." + _DNS1123_LABEL + r")*"
_DNS1123_SUBDOMAIN_RE = re.compile(_DNS1123_SUBDOMAIN)
_DNS1123_SUBDOMAIN_MAX_LENGTH = 253
_REGEX_META = set("\\.+*?()|[]{}^$")


def name_is_dns_subdomain(value: str) -> list[str]:
    """Return the reasons value is not a lowercase RFC 1123 subdomain (empty if valid)."""
    errors = []
    if len(value) > _DNS1123_SUBDOMAIN_MAX_LENGTH:
        errors.append(f"must be no more than {_DNS1123_SUBDOMAIN_MAX_LENGTH} characters")
    if not _DNS1123_SUBDOMAIN_RE.fullmatch(value):
        errors.append(
            "a lowercase RFC 1123 subdomain must consist of lower case alphanumeric "
            "characters, '-' or '.', and must start and end with an alphanumeric "
            "character (e.g. 'example.com', regex used for validation is "
            f"'{_DNS1123_SUBDOMAIN}')"
        )
    return errors


class ResourceName(str):
    """A resource name of the form prefix/name."""

    def split(self) -> tuple[str, str]:  # type: ignore[override]
        """Split into (prefix, name); prefix is empty when there is no slash."""
        parts = str.split(self, "/", 1)
        if len(parts) != 2:
            return "", str(self)
        return parts[0], parts[1]

    def default_shared_rename(self) -> "ResourceName":
        """The name used for this resource when it is shared."""
        return ResourceName(str(self) + DEFAULT_SHARED_RESOURCE_NAME_SUFFIX)

    @classmethod
    def from_json(cls, value: Any) -> "ResourceName":
        if not isinstance(value, str):
            raise ValueError(f"resource name must be a string: {value!r}")
        return new_resource_name(value)


def new_resource_name(name: str) -> ResourceName:
    """Build a validated resource name, adding the standard prefix if missing."""
    if not name.startswith(RESOURCE_NAME_PREFIX + "/"):
        name = f"{RESOURCE_NAME_PREFIX}/{name}"
    if len(name) > MAX_RESOURCE_NAME_LENGTH:
        raise ValueError(
            f"fully-qualified resource name must be {MAX_RESOURCE_NAME_LENGTH} "
            f"characters or less: {name}"
        )
    _, short = ResourceName(name).split()
    invalid = name_is_dns_subdomain(short)
    if invalid:
        raise ValueError(f"incorrect format for resource name '{name}': {invalid}")
    return ResourceName(name)


def wildcard_to_regexp(pattern: str) -> str:
    """Turn a '*' wildcard pattern into a regular expression."""
    return ".*".join(
        "".join("\\" + ch if ch in _REGEX_META else ch for ch in literal)
        for literal in pattern.split("*")
    )


class ResourcePattern(str):
    """A wildcard pattern matched against device names."""

    def matches(self, text: str) -> bool:
        """Whether the pattern occurs anywhere in text."""
        return re.search(wildcard_to_regexp(str(self)), text) is not None


@dataclass
class Resource:
    """A pattern paired with the resource name it maps to."""

    pattern: ResourcePattern
    name: ResourceName

    @classmethod
    def from_json(cls, data: Any) -> "Resource":
        if not isinstance(data, dict):
            raise ValueError(f"resource must be an object: {data!r}")
        if "pattern" not in data:
            raise ValueError("resources must have a 'pattern' field set")
        if "name" not in data:
            raise ValueError("resources must have a 'name' field set")
        pattern = data["pattern"]
        if not isinstance(pattern, str):
            raise ValueError(f"resource pattern must be a string: {pattern!r}")
        return cls(ResourcePattern(pattern), ResourceName.from_json(data["name"]))

    def to_json(self) -> dict[str, str]:
        return {"pattern": str(self.pattern), "name": str(self.name)}


def new_resource(pattern: str, name: str) -> Resource:
    """Build a resource from a pattern and a name."""
    try:
        resource_name = new_resource_name(name)
    except ValueError as exc:
        raise ValueError(f"invalid resource name: {exc}") from exc
    return Resource(ResourcePattern(pattern), resource_name)


def _resource_list(value: Any, key: str) -> list[Resource]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"'{key}' must be a list")
    return [Resource.from_json(item) for item in value]


@dataclass
class Resources:
    """Full GPU and MIG device resources, listed separately."""

    gpus: list[Resource] = field(default_factory=list)
    migs: list[Resource] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any) -> "Resources":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError(f"resources must be an object: {data!r}")
        return cls(
            gpus=_resource_list(data.get("gpus"), "gpus"),
            migs=_resource_list(data.get("mig"), "mig"),
        )

    def to_json(self) -> dict[str, Any]:
        result: dict[str, Any] = {"gpus": [r.to_json() for r in self.gpus]}
        if self.migs:
            result["mig"] = [r.to_json() for r in self.migs]
        return result

    def add_gpu_resource(self, pattern: str, name: str) -> None:
        self.gpus.append(new_resource(pattern, name))

    def add_mig_resource(self, pattern: str, name: str) -> None:
        self.migs.append(new_resource(pattern, name))