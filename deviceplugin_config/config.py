"""The versioned configuration file and its assembly from command-line flags."""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import IO, Any

import yaml

from deviceplugin_config.flags import CliContext, CliFlag, Flags
from deviceplugin_config.replicas import WarningLogger
from deviceplugin_config.resources import Resources
from deviceplugin_config.sharing import Sharing

VERSION = "v1"


@dataclass
class Config:
    """Versioned configuration for the device plugin and feature discovery."""

    version: str = VERSION
    flags: Flags = field(default_factory=Flags)
    resources: Resources = field(default_factory=Resources)
    sharing: Sharing = field(default_factory=Sharing)

    @classmethod
    def from_json(cls, data: Any) -> "Config":
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"config must be an object: {data!r}")
        version = data.get("version")
        if version is None:
            version = ""
        if not isinstance(version, str):
            raise ValueError(f"'version' must be a string: {version!r}")
        return cls(
            version=version,
            flags=Flags.from_json(data.get("flags")),
            resources=Resources.from_json(data.get("resources")),
            sharing=Sharing.from_json(data.get("sharing")),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "flags": self.flags.to_json(),
            "resources": self.resources.to_json(),
            "sharing": self.sharing.to_json(),
        }


def parse_config_from(stream: IO[Any]) -> Config:
    """Read a YAML or JSON config from a stream and check its version."""
    try:
        text = stream.read()
    except OSError as exc:
        raise ValueError(f"read error: {exc}") from exc
    try:
        config = Config.from_json(yaml.safe_load(text))
    except (yaml.YAMLError, ValueError) as exc:
        raise ValueError(f"unmarshal error: {exc}") from exc
    if not config.version:
        config.version = VERSION
    if config.version != VERSION:
        raise ValueError(f"unknown version: {config.version}")
    return config


def parse_config(path: str | os.PathLike[str]) -> Config:
    """Read a config file; OSError if it cannot be opened, ValueError if invalid."""
    try:
        stream = open(path, "rb")
    except OSError as exc:
        raise OSError(f"error opening config file: {exc}") from exc
    with stream:
        try:
            return parse_config_from(stream)
        except ValueError as exc:
            raise ValueError(f"error parsing config file: {exc}") from exc


def new_config(context: CliContext, flags: Iterable[CliFlag]) -> Config:
    """Build a config from the command line, the environment and a config file.

    Values given on the command line take precedence over the config file.
    """
    config = Config(version=VERSION)
    config_file = context.value("config-file")
    if config_file:
        try:
            config = parse_config(config_file)
        except (OSError, ValueError) as exc:
            raise ValueError(f"unable to parse config file: {exc}") from exc

    config.flags.update_from_cli_flags(context, flags)

    if not config.flags.nvidia_dev_root:
        config.flags.nvidia_dev_root = config.flags.nvidia_driver_root

    # Combining requests under MPS has unclear semantics, so they are refused.
    if config.sharing.mps is not None:
        config.sharing.mps.fail_requests_greater_than_one = True

    return config


def disable_resource_naming_in_config(logger: WarningLogger, config: Config) -> None:
    """Drop resource renaming and device selection from the config, with warnings."""
    if config.resources.gpus or config.resources.migs:
        logger.warning(
            "Customizing the 'resources' field is not yet supported in the config. Ignoring..."
        )
    config.resources.gpus = []
    config.resources.migs = []

    config.sharing.time_slicing.disable_resource_renaming(logger, "timeSlicing")
    if config.sharing.mps is not None:
        config.sharing.mps.disable_resource_renaming(logger, "mps")