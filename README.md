# deviceplugin-config

A library that models the versioned (`v1`) configuration of a GPU device
plugin and its companion feature-discovery daemon. It reads the configuration
as YAML or JSON, validates it, and merges it with command-line flag values.

## Installation

```
pip install .
```

For running the tests:

```
pip install .[test]
pytest
```

## Modules

- `deviceplugin_config.config`: `Config` (with `from_json` / `to_json`),
  `parse_config(path)`, `parse_config_from(stream)`, `new_config(context, flags)`
  and `disable_resource_naming_in_config(logger, config)`.
- `deviceplugin_config.flags`: `Flags`, `PluginCommandLineFlags` and
  `GFDCommandLineFlags`. Each has `from_json` / `to_json`, and `Flags.parse`
  reads JSON text. The module also has `CliFlag`, `CliContext` and
  `parse_device_list_strategy`.
- `deviceplugin_config.sharing`: `Sharing` and the `SharingStrategy` enum
  (`MPS`, `NONE`, `TIME_SLICING`).
- `deviceplugin_config.replicas`: `ReplicatedResources`, `ReplicatedResource`,
  `ReplicatedDevices` and `ReplicatedDeviceRef`.
- `deviceplugin_config.resources`: `ResourceName`, `ResourcePattern`,
  `Resource`, `Resources`, `new_resource_name`, `new_resource`,
  `wildcard_to_regexp` and `name_is_dns_subdomain`.
- `deviceplugin_config.strategy`: `DeviceListStrategies` and the configuration
  constants (MIG strategies, device list and device ID strategies, and default
  paths).
- `deviceplugin_config.duration`: `Duration`, `parse_duration` and
  `format_duration`.

## Behaviour

### Configuration files

`parse_config(path)` and `parse_config_from(stream)` load a `Config`:

- A missing `version` defaults to `v1`.
- Any other version is rejected with `ValueError`.
- A file that cannot be opened raises `OSError`.

### Command-line precedence

`new_config(context, flags)` starts from the file named by the `config-file`
flag, if one is given. It then calls `Flags.update_from_cli_flags`:

- A flag given explicitly in the `CliContext` overrides the file.
- A field that is still unset takes the flag's default.

After that, `new_config` makes two adjustments:

- An empty `nvidia_dev_root` is set to `nvidia_driver_root`.
- If MPS sharing is configured, its `fail_requests_greater_than_one` is forced
  to `True`.

### Resource names

`new_resource_name` adds the `nvidia.com/` prefix when it is missing. It then
checks that the full name is at most 63 characters long and that the part
after the prefix is a lowercase RFC 1123 subdomain.

`ResourcePattern.matches` searches the text with `*` wildcards.

### Replicated devices

`ReplicatedDevices` is one of three things:

- `"all"`;
- a positive count;
- a list of device references.

Each device reference is a GPU index (`"0"`), a MIG index (`"0:0"`), a
`GPU-<uuid>`, a `MIG-<uuid>`, or a `MIG-GPU-<uuid>/<gi>/<ci>`.

`ReplicatedResource` rules:

- It needs a `name` and `replicas` ≥ 2.
- `devices` defaults to `"all"`.
- With `renameByDefault`, resources without a `rename` get `<name>.shared`.

### Sharing strategy

`Sharing.sharing_strategy()` reports the active strategy:

- MPS, when MPS is configured and replicates something;
- otherwise time-slicing, when it replicates something;
- otherwise none.

### Device list strategies

`DeviceListStrategies.from_names` accepts `envvar`, `volume-mounts`,
`cdi-annotations` and `cdi-cri`. It answers `includes`, `any_cdi_enabled` and
`all_cdi_enabled`.

### Durations

`Duration.from_json` accepts a number of nanoseconds or a string such as
`"5s"` or `"1h30m"`. It writes itself back as text, for example `"5ns"` or
`"1h0m0s"`.

### Errors

Invalid input raises `ValueError` with a message that describes the problem.

## Examples

Loading a configuration:

```python
import io

from deviceplugin_config.config import parse_config_from
from deviceplugin_config.sharing import SharingStrategy

text = """
version: v1
flags:
  migStrategy: none
sharing:
  timeSlicing:
    resources:
      - name: nvidia.com/gpu
        replicas: 4
"""

config = parse_config_from(io.StringIO(text))
assert config.sharing.sharing_strategy() is SharingStrategy.TIME_SLICING
print(config.to_json())
```

Merging command-line values:

```python
from deviceplugin_config.config import new_config
from deviceplugin_config.flags import CliContext, CliFlag

flags = [
    CliFlag(("mig-strategy",), default="none"),
    CliFlag(("config-file",)),
]
context = CliContext(flags, {"mig-strategy": "mixed"})
config = new_config(context, flags)
assert config.flags.mig_strategy == "mixed"
```

`disable_resource_naming_in_config(logger, config)` clears these settings:

- custom resources;
- renames in the sharing sections;
- device selections in the sharing sections.

It reports each kind of change through `logger.warning`. A `logging.Logger`
will do.

## What this package does not do

This package only models and validates configuration. It has no command-line
program of its own. `CliContext` is filled in by the caller, not by parsing
`sys.argv`. It does not discover GPUs, serve the device plugin API, or write
node labels.