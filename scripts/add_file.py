#!/usr/bin/env python3
"""
Add File Script
===============

Upload a document to the configured content store and print its content id.
Optionally record the id on the registry contract.

Usage:
    python scripts/add_file.py diploma.pdf
    python scripts/add_file.py --text "Your diploma content here"
    python scripts/add_file.py diploma.pdf --record

Version: 0.1.0
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shared.logging import get_logger, setup_logging

setup_logging(log_level="INFO", json_logs=False, service_name="add-file")
logger = get_logger(__name__)


async def main(args: argparse.Namespace) -> int:
    """Upload, and record when asked."""
    from services.diploma.workflow import get_workflow
    from shared.errors import DiplomaRegistryError

    content = args.text.encode("utf-8") if args.text is not None else args.path.read_bytes()
    workflow = get_workflow()

    try:
        if not args.record:
            content_id = await workflow.store.upload(content)
            print(content_id)
            return 0

        await workflow.registry.connect()
        issuance = await workflow.issue(content, skip_if_unchanged=args.skip_if_unchanged)
        if issuance.content_id:
            print(issuance.content_id)
        issuance.raise_for_state()
        if issuance.receipt:
            logger.info("hash_recorded", tx_hash=issuance.receipt.tx_hash)
        return 0

    except DiplomaRegistryError as e:
        logger.error("add_file_failed", error=e.message, error_code=e.code, **e.details)
        return 1

    finally:
        await workflow.store.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Upload a file to the content store")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("path", nargs="?", type=Path, help="File to upload")
    source.add_argument("--text", help="Upload this text instead of a file")
    parser.add_argument(
        "--record",
        action="store_true",
        help="Also record the content id on the registry (setHash)",
    )
    parser.add_argument(
        "--skip-if-unchanged",
        action="store_true",
        help="With --record, skip the transaction if the id is already recorded",
    )

    sys.exit(asyncio.run(main(parser.parse_args())))
