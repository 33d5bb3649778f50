import io

import pytest

from deviceplugin_config.config import (
    Config,
    disable_resource_naming_in_config,
    new_config,
    parse_config,
    parse_config_from,
)
from deviceplugin_config.flags import CliContext, CliFlag
from deviceplugin_config.replicas import ReplicatedDevices, ReplicatedResources
from deviceplugin_config.sharing import Sharing, SharingStrategy

TIME_SLICING_YAML = """\
version: v1
flags:
  migStrategy: mixed
sharing:
  timeSlicing:
    resources:
    - name: nvidia.com/gpu
      replicas: 4
"""

MPS_YAML = """\
sharing:
  mps:
    resources:
    - name: gpu
      replicas: 2
"""


class _Recorder:
    def __init__(self):
        self.messages = []

    def warning(self, msg):
        self.messages.append(msg)


def test_empty_input_gives_default_config():
    config = parse_config_from(io.StringIO(""))
    assert config == Config()
    assert config.version == "v1"


def test_unknown_version_rejected():
    with pytest.raises(ValueError, match="unknown version"):
        parse_config_from(io.StringIO("version: v2\n"))


def test_invalid_yaml_rejected():
    with pytest.raises(ValueError, match="unmarshal error"):
        parse_config_from(io.StringIO("flags: [\n"))


def test_yaml_document_parsed():
    config = parse_config_from(io.StringIO(TIME_SLICING_YAML))
    assert config.flags.mig_strategy == "mixed"
    assert config.sharing.sharing_strategy() == SharingStrategy.TIME_SLICING
    assert config.sharing.time_slicing.resources[0].name == "nvidia.com/gpu"


def test_json_document_parsed():
    config = parse_config_from(io.StringIO('{"version": "v1", "flags": {"migStrategy": "single"}}'))
    assert config.flags.mig_strategy == "single"


def test_parse_config_missing_file(tmp_path):
    with pytest.raises(OSError, match="error opening config file"):
        parse_config(tmp_path / "absent.yaml")


def test_parse_config_from_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(TIME_SLICING_YAML)
    assert parse_config(path) == parse_config_from(io.StringIO(TIME_SLICING_YAML))


def test_new_config_without_file_uses_flags():
    defs = [
        CliFlag("mig-strategy", default="none"),
        CliFlag(("nvidia-driver-root", "driver-root"), default="/"),
    ]
    config = new_config(CliContext(defs, {"mig-strategy": "single"}), defs)
    assert config.version == "v1"
    assert config.flags.mig_strategy == "single"
    assert config.flags.nvidia_dev_root == config.flags.nvidia_driver_root == "/"


def test_new_config_keeps_explicit_dev_root():
    defs = [CliFlag("driver-root", default="/"), CliFlag("dev-root")]
    config = new_config(CliContext(defs, {"dev-root": "/driver-root"}), defs)
    assert config.flags.nvidia_dev_root == "/driver-root"
    assert config.flags.nvidia_driver_root == "/"


def test_new_config_from_file_forces_mps_fail_requests(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(MPS_YAML)
    defs = [CliFlag("config-file")]
    config = new_config(CliContext(defs, {"config-file": str(path)}), defs)
    assert config.sharing.mps.fail_requests_greater_than_one is True
    assert config.sharing.sharing_strategy() == SharingStrategy.MPS


def test_new_config_bad_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("version: v9\n")
    defs = [CliFlag("config-file")]
    with pytest.raises(ValueError, match="unable to parse config file"):
        new_config(CliContext(defs, {"config-file": str(path)}), defs)


def test_round_trip():
    config = parse_config_from(io.StringIO(TIME_SLICING_YAML))
    config.resources.add_gpu_resource("*", "gpu")
    assert Config.from_json(config.to_json()) == config


def test_disable_resource_naming():
    config = Config()
    config.resources.add_gpu_resource("*", "gpu")
    config.sharing = Sharing(
        time_slicing=ReplicatedResources.from_json(
            {"resources": [{"name": "gpu", "replicas": 2, "rename": "gpu-shared", "devices": 2}]}
        )
    )
    logger = _Recorder()
    disable_resource_naming_in_config(logger, config)
    assert config.resources.gpus == []
    resource = config.sharing.time_slicing.resources[0]
    assert resource.rename == ""
    assert resource.devices == ReplicatedDevices(all=True)
    assert len(logger.messages) == 3
    assert "'resources' field" in logger.messages[0]
    assert "sharing.timeSlicing.resources" in logger.messages[1]


def test_disable_resource_naming_quiet_when_nothing_custom():
    config = parse_config_from(io.StringIO(TIME_SLICING_YAML))
    logger = _Recorder()
    disable_resource_naming_in_config(logger, config)
    assert logger.messages == []