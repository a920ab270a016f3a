from __future__ import annotations

from typing import Callable

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pixelock.db import Base
from pixelock.errors import StorageError
from pixelock.models import analytics_event, ticket  # noqa: F401


def make_sessionmaker():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


class FakeBlobStore:
    """In-memory stand-in for BlobStore that records what was asked of it."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.presigned: list[tuple[str, int]] = []
        self.fail_delete = False
        self.fail_presign = False
        self.on_presign: Callable[[str], None] | None = None

    def put(self, key, data, content_type=None, metadata=None):
        self.objects[key] = data
        return key

    def delete(self, key):
        if self.fail_delete:
            raise StorageError()
        self.deleted.append(key)
        self.objects.pop(key, None)

    def presign_get(self, key, expires_seconds):
        if self.fail_presign:
            raise StorageError("Could not issue link")
        if self.on_presign:
            self.on_presign(key)
        self.presigned.append((key, expires_seconds))
        return f"https://blobs.test/{key}?expires={expires_seconds}"
