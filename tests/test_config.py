import pytest

from pairchat.config import RelayConfig
from pairchat.core.context import RelayMode


def test_defaults():
    config = RelayConfig.from_env({})
    assert config.host == "0.0.0.0"
    assert config.port == 8080
    assert config.mode is RelayMode.PAIRED
    assert config.queue_size == 256


def test_environment_overrides():
    config = RelayConfig.from_env({
        "PAIRCHAT_HOST": "127.0.0.1",
        "PAIRCHAT_PORT": "9000",
        "PAIRCHAT_MODE": "direct",
        "PAIRCHAT_LOG_LEVEL": "debug",
        "PAIRCHAT_QUEUE_SIZE": "8",
    })
    assert config == RelayConfig("127.0.0.1", 9000, RelayMode.DIRECT, "debug", 8)


def test_flags_override_environment():
    config = RelayConfig.from_args(["--port", "7000", "--mode", "direct"], env={"PAIRCHAT_PORT": "9000"})
    assert config.port == 7000
    assert config.mode is RelayMode.DIRECT


@pytest.mark.parametrize(
    "env",
    [
        {"PAIRCHAT_MODE": "broadcast"},
        {"PAIRCHAT_PORT": "http"},
        {"PAIRCHAT_PORT": "70000"},
        {"PAIRCHAT_QUEUE_SIZE": "0"},
        {"PAIRCHAT_LOG_LEVEL": "chatty"},
    ],
)
def test_invalid_values_are_rejected(env):
    with pytest.raises(ValueError):
        RelayConfig.from_env(env)
