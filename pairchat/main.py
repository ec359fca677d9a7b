import argparse
import asyncio
import logging
import os

from pairchat.config import DEFAULT_URI, configure_logging
from pairchat.core.context import RelayMode
from pairchat.ui.cli import PairChatCLI


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="pairchat", description="PairChat terminal client")
    parser.add_argument("--uri", default=os.getenv("PAIRCHAT_URI", DEFAULT_URI))
    parser.add_argument(
        "--mode",
        choices=[m.value for m in RelayMode],
        default=os.getenv("PAIRCHAT_MODE", RelayMode.PAIRED.value),
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    # keep library chatter out of the chat window
    configure_logging(os.getenv("PAIRCHAT_LOG_LEVEL", "WARNING"))
    cli = PairChatCLI(uri=args.uri, mode=args.mode)
    try:
        asyncio.run(cli.run())
    except KeyboardInterrupt:
        pass
    except Exception as e:
        logging.getLogger(__name__).debug("client crashed", exc_info=True)
        print(f"Fatal Error: {e}")


if __name__ == "__main__":
    main()
