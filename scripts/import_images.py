#!/usr/bin/env python3
"""
Register images that are already in storage.

Reads a JSON list of {"src", "alt", "description", "category", "year", "width"}
entries and creates a gallery record for each through POST /gallery/existing.
Entries whose src is already registered are skipped.

Usage:
    python scripts/import_images.py images.json [--api-url http://localhost:3001/api]
"""
import argparse
import asyncio
import getpass
import json
import logging
import sys

import httpx
from pydantic import TypeAdapter, ValidationError

from portfolio.client.api import GalleryApiClient
from portfolio.config import ClientSettings
from portfolio.schemas import ExistingImageCreate

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("import_images")


async def import_images(api: GalleryApiClient, images: list) -> int:
    """Register each image, returning how many were created."""
    gallery = await api.get_gallery()
    known = {image.src for image in gallery.all_images()}

    created = 0
    for image in images:
        if image.src in known:
            logger.info(f"Skipping {image.src}: already registered")
            continue
        try:
            record = await api.register_existing_image(image)
        except httpx.HTTPStatusError as e:
            logger.error(f"Failed to register {image.src}: {e.response.status_code} {e.response.text}")
            continue
        known.add(record.src)
        created += 1
        logger.info(f"Registered {record.alt} as {record.id} ({record.category}, order={record.order})")
    return created


async def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("path", help="JSON file with the images to register")
    parser.add_argument("--api-url", default=ClientSettings().API_URL)
    args = parser.parse_args()

    try:
        with open(args.path, encoding="utf-8") as f:
            images = TypeAdapter(list[ExistingImageCreate]).validate_python(json.load(f))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Cannot read {args.path}: {e}")
        return 1

    async with GalleryApiClient(base_url=args.api_url) as api:
        if not await api.login(getpass.getpass("Admin secret: ")):
            logger.error("Invalid admin secret")
            return 1
        try:
            created = await import_images(api, images)
        except httpx.HTTPError as e:
            logger.error(f"Import aborted: {e}")
            return 1

    logger.info(f"Registered {created} of {len(images)} images")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
