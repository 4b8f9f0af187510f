import io
import os
import tempfile

# Configure the service before anything imports imagehub.config
_db_dir = tempfile.mkdtemp(prefix="imagehub-tests-")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_db_dir, 'imagehub.db')}")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "100000")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from PIL import Image


def make_image_bytes(width=80, height=60, fmt="JPEG", mode="RGB", color=None):
    if color is None:
        color = {"RGB": (200, 30, 30), "RGBA": (200, 30, 30, 128), "L": 128, "P": 3}[mode]
    img = Image.new(mode, (width, height), color)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def make_image():
    return make_image_bytes


@pytest.fixture
def jpeg_bytes():
    return make_image_bytes(120, 80, "JPEG")
