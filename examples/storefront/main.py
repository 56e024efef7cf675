"""
Entry point.

Run: uv run python -m examples.storefront.main
"""

import asyncio
import logging

from examples.storefront.demo import run_demo


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)-7s %(name)s: %(message)s")
    asyncio.run(run_demo())
