"""Demo client: emits a stream of sample UI actions through the action logger."""

import argparse
import asyncio
import dataclasses
import logging
import random
import signal

from action_logger.config import load_config
from action_logger.emitter import create
from action_logger.instrumentation import wrap_async
from action_logger.provider import ActionLoggerProvider

logger = logging.getLogger(__name__)

SAMPLE_ROUTES = ["/", "/discover", "/messages", "/profile", "/settings"]
SAMPLE_BUTTONS = ["like_button", "pass_button", "send_message", "save_profile", "open_filters"]
SAMPLE_REQUESTS = [
    ("GET", "/api/matches"),
    ("GET", "/api/messages"),
    ("POST", "/api/messages"),
    ("PUT", "/api/profile"),
]
SAMPLE_STATUSES = [200, 200, 200, 201, 304, 404, 500]


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Action logger demo client")
    parser.add_argument("--config", type=str, default=None, help="YAML config file")
    parser.add_argument("--collector-url", type=str, default=None)
    parser.add_argument("--log-level", type=str, default=None)
    parser.add_argument("--flush-interval", type=float, default=None)
    parser.add_argument("--events-per-second", type=int, default=5)
    parser.add_argument("--run-time", type=int, default=10)
    return parser.parse_args(argv)


async def _fake_save(delay: float) -> str:
    await asyncio.sleep(delay)
    if random.random() < 0.1:
        raise RuntimeError("Profile save failed")
    return "saved"


async def run(args: argparse.Namespace, shutdown: asyncio.Event) -> None:
    config = load_config(args.config)
    overrides = {}
    if args.collector_url:
        overrides["collector_url"] = args.collector_url
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.flush_interval is not None:
        overrides["flush_interval"] = args.flush_interval
    config = dataclasses.replace(config, **overrides)

    action_logger = create(config)
    save = wrap_async(action_logger, "save_profile", _fake_save, component="ProfileForm")

    with ActionLoggerProvider(action_logger) as provider:
        provider.set_user(f"user-{random.randint(1, 999)}")
        for _ in range(args.run_time):
            if shutdown.is_set():
                break
            for _ in range(args.events_per_second):
                choice = random.random()
                if choice < 0.2:
                    provider.navigate(random.choice(SAMPLE_ROUTES))
                elif choice < 0.6:
                    provider.log_click(random.choice(SAMPLE_BUTTONS), "button")
                elif choice < 0.9:
                    method, url = random.choice(SAMPLE_REQUESTS)
                    request_id = action_logger.log_request(method, url)
                    action_logger.log_response(
                        request_id, random.choice(SAMPLE_STATUSES), random.uniform(5, 300)
                    )
                else:
                    try:
                        await save(0.01)
                    except RuntimeError as exc:
                        logger.debug("save_profile failed: %s", exc)
            try:
                await asyncio.wait_for(shutdown.wait(), timeout=1.0)
            except asyncio.TimeoutError:
                pass

    await action_logger.shutdown()
    logger.info("Client metrics: %s", action_logger.metrics.snapshot())


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    args = parse_args()

    async def _main():
        shutdown = asyncio.Event()
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, shutdown.set)
        await run(args, shutdown)

    asyncio.run(_main())


if __name__ == "__main__":
    main()
