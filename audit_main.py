"""CI audit: scan rendered HTML pages for dead buttons and fail the build on findings."""

import argparse
import asyncio
import dataclasses
import logging
import sys

from action_logger.auditor import DeadElementAuditor
from action_logger.config import load_config
from action_logger.emitter import ActionLogger
from action_logger.errors import DeadElementsFound

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Dead button audit for rendered pages")
    parser.add_argument("pages", nargs="+", help="HTML files to scan")
    parser.add_argument("--config", type=str, default=None, help="YAML config file")
    parser.add_argument("--no-ci", action="store_true", default=False,
                        help="Report findings without failing")
    return parser.parse_args(argv)


async def audit(paths: list[str], ci: bool = True, config_path: str | None = None) -> int:
    """Scan every page; returns the number of pages with dead elements."""
    config = dataclasses.replace(load_config(config_path), ci=ci)
    failed = 0
    async with ActionLogger(config) as action_logger:
        auditor = DeadElementAuditor(action_logger, config=config)
        for path in paths:
            with open(path, "r", encoding="utf-8") as f:
                html = f.read()
            action_logger.set_url(path)
            try:
                result = auditor.scan(html)
            except DeadElementsFound as exc:
                logger.error("%s: %s", path, exc)
                failed += 1
                continue
            if result.has_dead_elements:
                failed += 1
    return failed


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    args = parse_args()
    failed = asyncio.run(audit(args.pages, ci=not args.no_ci, config_path=args.config))
    if failed and not args.no_ci:
        sys.exit(1)


if __name__ == "__main__":
    main()
