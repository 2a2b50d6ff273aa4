from __future__ import annotations

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column, Session

from bunkerwatch_app.repositories.database import Base


class SyncMetadataORM(Base):
    __tablename__ = "sync_metadata"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)


class SyncMetadataRepository:
    """Key/value bookkeeping for downloads and uploads (last_download, package_version, ...)."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def get(self, key: str, default: str | None = None) -> str | None:
        obj = self._db.get(SyncMetadataORM, key)
        if obj is None:
            return default
        return obj.value

    def set(self, key: str, value: str | None, commit: bool = True) -> None:
        obj = self._db.get(SyncMetadataORM, key)
        if obj is None:
            self._db.add(SyncMetadataORM(key=key, value=value))
        else:
            obj.value = value
        if commit:
            self._db.commit()
