"""
Persistence for processed images.

Each save writes one PNG to the blob store and then one row to the
``image_operations`` table.  Database engines are created lazily, one per URL,
and shared by every request in the process until ``dispose_engines`` is called.
"""

import base64
import binascii
import logging
import os
import re
import threading
import time
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, MetaData, String, Table, create_engine, insert, select
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "image_name",
    "operation",
    "original_width",
    "original_height",
    "new_width",
    "new_height",
    "image_data_url",
)
DIMENSION_FIELDS = ("original_width", "original_height", "new_width", "new_height")


class StorageError(Exception):
    pass


class InvalidPayload(ValueError):
    pass


metadata = MetaData()

image_operations = Table(
    "image_operations",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("image_name", String(255), nullable=False),
    Column("operation_type", String(64), nullable=False),
    Column("blob_url", String(1024), nullable=False),
    Column("original_width", Integer),
    Column("original_height", Integer),
    Column("new_width", Integer),
    Column("new_height", Integer),
    Column("timestamp", DateTime(timezone=True), nullable=False),
)


# ── Engine pool ──────────────────────────────────────────────────────────────

_engines = {}
_engines_lock = threading.Lock()


def get_engine(url: str):
    """Return the shared engine for ``url``, creating it (and the table) on first use."""
    with _engines_lock:
        engine = _engines.get(url)
        if engine is None:
            logger.info("Opening database %s", url)
            engine = create_engine(url, pool_pre_ping=True)
            metadata.create_all(engine)
            _engines[url] = engine
        return engine


def dispose_engines() -> None:
    with _engines_lock:
        for engine in _engines.values():
            engine.dispose()
        _engines.clear()


# ── Helpers ──────────────────────────────────────────────────────────────────

def decode_data_url(data_url: str) -> bytes:
    # line-wrapped base64 is accepted
    encoded = re.sub(r"\s+", "", data_url.split(";base64,")[-1])
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidPayload(f"image_data_url is not valid base64: {exc}") from exc


def blob_filename(image_name: str, now=None) -> str:
    if now is None:
        now = time.time()
    name = secure_filename(re.sub(r"\s", "_", image_name)) or "image"
    return f"{int(now * 1000)}-{name}.png"


def validate_payload(payload) -> dict:
    if not isinstance(payload, dict):
        raise InvalidPayload("Expected a JSON object")
    missing = [f for f in REQUIRED_FIELDS if payload.get(f) in (None, "")]
    if missing:
        raise InvalidPayload(f"Missing fields: {', '.join(missing)}")
    if not isinstance(payload["image_data_url"], str):
        raise InvalidPayload("image_data_url must be a string")
    clean = dict(payload)
    for field in DIMENSION_FIELDS:
        try:
            clean[field] = int(payload[field])
        except (TypeError, ValueError):
            raise InvalidPayload(f"{field} must be an integer") from None
        if clean[field] < 0:
            raise InvalidPayload(f"{field} must be >= 0")
    clean["image_name"] = str(payload["image_name"])
    clean["operation"] = str(payload["operation"])
    return clean


# ── Stores ───────────────────────────────────────────────────────────────────

class BlobStore:
    """Public artifacts on the local filesystem, addressed by URL."""

    def __init__(self, root: str, public_base_url: str):
        self.root = root
        self.public_base_url = public_base_url.rstrip("/")

    def path_for(self, filename: str) -> str:
        return os.path.join(self.root, filename)

    def url_for(self, filename: str) -> str:
        return f"{self.public_base_url}/{filename}"

    def put(self, filename: str, data: bytes) -> str:
        path = self.path_for(filename)
        try:
            os.makedirs(self.root, exist_ok=True)
            with open(path, "xb") as f:
                f.write(data)
        except OSError as exc:
            raise StorageError(f"Could not store {filename}: {exc}") from exc
        logger.info("Stored blob %s (%d bytes)", filename, len(data))
        return self.url_for(filename)


class OperationLog:
    def __init__(self, engine):
        self.engine = engine

    def record(self, image_name, operation_type, blob_url, original_width=None,
               original_height=None, new_width=None, new_height=None, timestamp=None) -> int:
        row = {
            "image_name": image_name,
            "operation_type": operation_type,
            "blob_url": blob_url,
            "original_width": original_width,
            "original_height": original_height,
            "new_width": new_width,
            "new_height": new_height,
            "timestamp": timestamp or datetime.now(timezone.utc),
        }
        with self.engine.begin() as conn:
            result = conn.execute(insert(image_operations).values(**row))
        return result.inserted_primary_key[0]

    def recent(self, limit: int = 20):
        query = select(image_operations).order_by(image_operations.c.id.desc()).limit(limit)
        with self.engine.connect() as conn:
            rows = conn.execute(query).mappings().all()
        return [dict(r) for r in rows]


def save_processed_image(payload, blobs: BlobStore, log: OperationLog) -> str:
    """Store the image in ``payload`` and log the operation; return the public URL."""
    data = validate_payload(payload)
    image_bytes = decode_data_url(data["image_data_url"])
    url = blobs.put(blob_filename(data["image_name"]), image_bytes)
    log.record(
        image_name=data["image_name"],
        operation_type=data["operation"],
        blob_url=url,
        original_width=data["original_width"],
        original_height=data["original_height"],
        new_width=data["new_width"],
        new_height=data["new_height"],
    )
    return url
