#!/usr/bin/env python3
"""
Get File Script
===============

Fetch a document from the content store, either by content id or by
reading the id currently recorded on the registry contract.

Usage:
    python scripts/get_file.py bafkreif...
    python scripts/get_file.py --current --output diploma.pdf

Version: 0.1.0
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shared.logging import get_logger, setup_logging

setup_logging(log_level="INFO", json_logs=False, service_name="get-file")
logger = get_logger(__name__)


def _emit(content: bytes, output: Path | None) -> None:
    if output is not None:
        output.write_bytes(content)
        logger.info("file_written", path=str(output), size=len(content))
    else:
        sys.stdout.buffer.write(content)
        sys.stdout.buffer.flush()


async def main(args: argparse.Namespace) -> int:
    """Fetch by id, or retrieve the current diploma."""
    from services.diploma.workflow import RetrievalStatus, get_workflow
    from shared.errors import DiplomaRegistryError

    workflow = get_workflow()

    try:
        if args.content_id:
            _emit(await workflow.store.fetch(args.content_id), args.output)
            return 0

        await workflow.registry.connect()
        result = await workflow.retrieve()
        if result.status == RetrievalStatus.NOT_ISSUED:
            logger.error("nothing_issued")
            return 2
        if result.status == RetrievalStatus.UNREACHABLE:
            logger.error("content_unreachable", content_id=result.content_id)
            return 3

        _emit(result.content or b"", args.output)
        return 0

    except DiplomaRegistryError as e:
        logger.error("get_file_failed", error=e.message, error_code=e.code, **e.details)
        return 1

    finally:
        await workflow.store.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Fetch a file from the content store")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("content_id", nargs="?", help="Content id to fetch")
    source.add_argument(
        "--current",
        action="store_true",
        help="Fetch the content id currently recorded on the registry",
    )
    parser.add_argument("--output", "-o", type=Path, help="Write to this file instead of stdout")

    sys.exit(asyncio.run(main(parser.parse_args())))
