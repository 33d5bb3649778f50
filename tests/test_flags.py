import datetime

import pytest

from deviceplugin_config.duration import Duration, parse_duration
from deviceplugin_config.flags import (
    CliContext,
    CliFlag,
    Flags,
    GFDCommandLineFlags,
    PluginCommandLineFlags,
    parse_device_list_strategy,
)

UNMARSHAL_CASES = [
    ("{}", Flags()),
    ('{"gfd": {}}', Flags(gfd=GFDCommandLineFlags())),
    ('{"gfd": {"sleepInterval": 0}}', Flags(gfd=GFDCommandLineFlags(sleep_interval=Duration(0)))),
    ('{"gfd": {"sleepInterval": "0s"}}', Flags(gfd=GFDCommandLineFlags(sleep_interval=Duration(0)))),
    ('{"gfd": {"sleepInterval": 5}}', Flags(gfd=GFDCommandLineFlags(sleep_interval=Duration(5)))),
    (
        '{"gfd": {"sleepInterval": "5s"}}',
        Flags(gfd=GFDCommandLineFlags(sleep_interval=Duration(5_000_000_000))),
    ),
    (
        '{"plugin": {"deviceListStrategy": "envvar"}}',
        Flags(plugin=PluginCommandLineFlags(device_list_strategy=["envvar"])),
    ),
    (
        '{"plugin": {"deviceListStrategy": ["envvar", "cdi-annotations"]}}',
        Flags(plugin=PluginCommandLineFlags(device_list_strategy=["envvar", "cdi-annotations"])),
    ),
]


@pytest.mark.parametrize("text, expected", UNMARSHAL_CASES)
def test_unmarshal_flags(text, expected):
    assert Flags.parse(text) == expected


def test_unmarshal_empty_input_fails():
    with pytest.raises(ValueError):
        Flags.parse("")


BASE = {
    "migStrategy": None,
    "failOnInitError": None,
    "gdsEnabled": None,
    "mofedEnabled": None,
    "useNodeFeatureAPI": None,
    "deviceDiscoveryStrategy": None,
}


@pytest.mark.parametrize(
    "flags, expected",
    [
        (Flags(), BASE),
        (
            Flags(gfd=GFDCommandLineFlags(sleep_interval=Duration(0))),
            {
                **BASE,
                "gfd": {
                    "oneshot": None,
                    "noTimestamp": None,
                    "outputFile": None,
                    "sleepInterval": "0s",
                    "machineTypeFile": None,
                },
            },
        ),
        (
            Flags(gfd=GFDCommandLineFlags(sleep_interval=Duration(5))),
            {
                **BASE,
                "gfd": {
                    "oneshot": None,
                    "noTimestamp": None,
                    "outputFile": None,
                    "sleepInterval": "5ns",
                    "machineTypeFile": None,
                },
            },
        ),
    ],
)
def test_marshal_flags(flags, expected):
    assert flags.to_json() == expected


def test_json_round_trip():
    flags = Flags(
        mig_strategy="mixed",
        nvidia_driver_root="/driver-root",
        plugin=PluginCommandLineFlags(device_list_strategy=["envvar"], pass_device_specs=True),
        gfd=GFDCommandLineFlags(oneshot=False, sleep_interval=Duration(5)),
    )
    assert Flags.from_json(flags.to_json()) == flags


def test_wrong_type_rejected():
    with pytest.raises(ValueError):
        Flags.from_json({"migStrategy": 3})


def test_parse_device_list_strategy():
    assert parse_device_list_strategy("envvar") == ["envvar"]
    assert parse_device_list_strategy(["envvar", "cdi-cri"]) == ["envvar", "cdi-cri"]
    with pytest.raises(ValueError, match="invalid deviceListStrategy"):
        parse_device_list_strategy(5)


def test_cli_context_aliases_and_defaults():
    flag = CliFlag(("nvidia-driver-root", "driver-root"), default="/")
    context = CliContext([flag], {"driver-root": "/driver-root"})
    assert context.is_set("nvidia-driver-root")
    assert context.value("nvidia-driver-root") == "/driver-root"
    empty = CliContext([flag])
    assert not empty.is_set("driver-root")
    assert empty.value("driver-root") == "/"
    assert empty.value("unknown") is None


def test_update_sets_explicit_value():
    flag = CliFlag("mig-strategy", default="none")
    flags = Flags(mig_strategy="single")
    flags.update_from_cli_flags(CliContext([flag], {"mig-strategy": "mixed"}), [flag])
    assert flags.mig_strategy == "mixed"


def test_update_keeps_existing_when_not_set():
    flag = CliFlag("mig-strategy", default="none")
    flags = Flags(mig_strategy="single")
    flags.update_from_cli_flags(CliContext([flag]), [flag])
    assert flags.mig_strategy == "single"


def test_update_fills_unset_with_default():
    flag = CliFlag("mig-strategy", default="none")
    flags = Flags()
    flags.update_from_cli_flags(CliContext([flag]), [flag])
    assert flags.mig_strategy == "none"
    assert flags.plugin == PluginCommandLineFlags()
    assert flags.gfd == GFDCommandLineFlags()


def test_update_plugin_and_gfd_fields():
    defs = [
        CliFlag("device-list-strategy"),
        CliFlag(("nvidia-ctk-path", "nvidia-cdi-hook-path")),
        CliFlag("sleep-interval"),
        CliFlag("oneshot"),
    ]
    context = CliContext(
        defs,
        {
            "device-list-strategy": ["envvar", "cdi-cri"],
            "nvidia-cdi-hook-path": "/usr/bin/nvidia-ctk",
            "sleep-interval": "5s",
        },
    )
    flags = Flags()
    flags.update_from_cli_flags(context, defs)
    assert flags.plugin.device_list_strategy == ["envvar", "cdi-cri"]
    assert flags.plugin.nvidia_ctk_path == "/usr/bin/nvidia-ctk"
    assert flags.gfd.sleep_interval == parse_duration("5s")
    assert flags.gfd.oneshot is False


def test_update_accepts_timedelta():
    flag = CliFlag("sleep-interval")
    flags = Flags()
    context = CliContext([flag], {"sleep-interval": datetime.timedelta(seconds=5)})
    flags.update_from_cli_flags(context, [flag])
    assert flags.gfd.sleep_interval == parse_duration("5s")