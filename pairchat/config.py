import argparse
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from pairchat.core.context import RelayMode

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_QUEUE_SIZE = 256
DEFAULT_URI = f"ws://localhost:{DEFAULT_PORT}"

LOG_FORMAT = "%(asctime)s - %(message)s"


@dataclass(frozen=True)
class RelayConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    mode: RelayMode = RelayMode.PAIRED
    log_level: str = "INFO"
    queue_size: int = DEFAULT_QUEUE_SIZE

    def __post_init__(self):
        if not 0 <= self.port <= 65535:
            raise ValueError(f"port out of range: {self.port}")
        if self.queue_size < 1:
            raise ValueError(f"queue size must be positive: {self.queue_size}")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"unknown log level: {self.log_level}")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "RelayConfig":
        env = os.environ if env is None else env
        return cls(
            host=env.get("PAIRCHAT_HOST", DEFAULT_HOST),
            port=int(env.get("PAIRCHAT_PORT", DEFAULT_PORT)),
            mode=RelayMode(env.get("PAIRCHAT_MODE", RelayMode.PAIRED.value)),
            log_level=env.get("PAIRCHAT_LOG_LEVEL", "INFO"),
            queue_size=int(env.get("PAIRCHAT_QUEUE_SIZE", DEFAULT_QUEUE_SIZE)),
        )

    @classmethod
    def from_args(
        cls, argv: Optional[Sequence[str]] = None, env: Optional[Mapping[str, str]] = None
    ) -> "RelayConfig":
        """Environment first, then command-line flags on top."""
        base = cls.from_env(env)
        parser = argparse.ArgumentParser(prog="pairchat-relay", description="PairChat relay server")
        parser.add_argument("--host", default=base.host)
        parser.add_argument("--port", type=int, default=base.port)
        parser.add_argument("--mode", choices=[m.value for m in RelayMode], default=base.mode.value)
        parser.add_argument("--log-level", default=base.log_level)
        parser.add_argument("--queue-size", type=int, default=base.queue_size)
        args = parser.parse_args(argv)
        return cls(
            host=args.host,
            port=args.port,
            mode=RelayMode(args.mode),
            log_level=args.log_level,
            queue_size=args.queue_size,
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
