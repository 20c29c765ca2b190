"""Test configuration and fixtures for the portfolio API and gallery client.

Provides:
- A temporary SQLite database, reset for every test that asks for it
- A known admin secret with its bcrypt hash in the environment
- Fake Cloudinary upload/delete so nothing leaves the machine
"""
import asyncio
import io
import os
import sys
import tempfile
from pathlib import Path
from typing import Dict, List

import bcrypt
import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Ensure the package is importable without installation
sys.path.insert(0, str(Path(__file__).parent.parent))

ADMIN_SECRET = "correct horse battery staple"

# Set test environment BEFORE importing portfolio modules
_TEST_DIR = Path(tempfile.mkdtemp(prefix="portfolio-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR / 'test.db'}"
os.environ["ADMIN_PASSWORD_HASH"] = bcrypt.hashpw(
    ADMIN_SECRET.encode("utf-8"), bcrypt.gensalt(rounds=4)
).decode("utf-8")
os.environ["CLOUDINARY_CLOUD_NAME"] = ""


def cloudinary_url(name: str) -> str:
    return f"https://res.cloudinary.com/demo/image/upload/v1700000000/gallery/{name}.webp"


@pytest.fixture
def reset_db():
    """Drop and recreate all tables."""
    from portfolio.database import Base, engine
    from portfolio import models  # noqa: F401

    async def _reset():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_reset())


@pytest.fixture
def fake_storage(monkeypatch) -> Dict[str, List]:
    """Replace Cloudinary calls made by the gallery routes with in-memory fakes."""
    from portfolio.routes import gallery as gallery_routes

    calls: Dict[str, List] = {"uploads": [], "deletes": [], "delete_error": []}

    async def fake_upload(content, folder=None, max_retries=3):
        calls["uploads"].append(content)
        name = f"upload-{len(calls['uploads'])}"
        return {
            "url": cloudinary_url(name),
            "public_id": f"gallery/{name}",
            "format": "webp",
            "width": 8,
            "height": 8,
            "bytes": len(content),
        }

    async def fake_delete(public_id, max_retries=3):
        calls["deletes"].append(public_id)
        if calls["delete_error"]:
            raise calls["delete_error"][0]
        return {"result": "ok"}

    monkeypatch.setattr(gallery_routes, "upload_image", fake_upload)
    monkeypatch.setattr(gallery_routes, "delete_image", fake_delete)
    return calls


@pytest.fixture
def client(reset_db, fake_storage) -> TestClient:
    from portfolio.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {ADMIN_SECRET}"}


@pytest.fixture
def png_bytes() -> bytes:
    """A small real PNG image."""
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=(200, 40, 40)).save(buffer, format="PNG")
    return buffer.getvalue()


def existing_image_payload(name: str, category: str = "finished", **overrides) -> Dict:
    payload = {
        "src": cloudinary_url(name),
        "alt": name.replace("-", " ").title(),
        "description": "40x40cm, Acryl auf Leinwand",
        "category": category,
        "year": 2025,
    }
    payload.update(overrides)
    return payload
