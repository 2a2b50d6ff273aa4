"""
Repository for recorded soundings and their upload status.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List

from sqlalchemy import Integer, String, Float, DateTime
from sqlalchemy.orm import Mapped, mapped_column, Session

from bunkerwatch_app.models import SoundingLog, SyncStatus
from bunkerwatch_app.repositories.database import Base


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SoundingLogORM(Base):
    __tablename__ = "sounding_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vessel_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    compartment_id: Mapped[int] = mapped_column(Integer, nullable=False)
    ullage: Mapped[float] = mapped_column(Float, nullable=False)
    trim: Mapped[float] = mapped_column(Float, nullable=False)
    heel: Mapped[float | None] = mapped_column(Float, nullable=True)
    base_volume: Mapped[float] = mapped_column(Float, default=0.0)
    heel_correction: Mapped[float] = mapped_column(Float, default=0.0)
    final_volume: Mapped[float] = mapped_column(Float, default=0.0)
    sound: Mapped[int | None] = mapped_column(Integer, nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    sync_status: Mapped[str] = mapped_column(String(16), default=SyncStatus.PENDING.value, index=True)
    synced_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


def _log_from_orm(obj: SoundingLogORM) -> SoundingLog:
    return SoundingLog(
        id=obj.id,
        vessel_id=obj.vessel_id,
        compartment_id=obj.compartment_id,
        ullage=obj.ullage,
        trim=obj.trim,
        heel=obj.heel,
        base_volume=obj.base_volume,
        heel_correction=obj.heel_correction,
        final_volume=obj.final_volume,
        sound=obj.sound,
        recorded_at=obj.recorded_at,
        sync_status=SyncStatus(obj.sync_status),
        synced_at=obj.synced_at,
    )


class SoundingLogRepository:
    def __init__(self, db: Session) -> None:
        self._db = db

    def create(self, log: SoundingLog) -> SoundingLog:
        obj = SoundingLogORM(
            vessel_id=log.vessel_id,
            compartment_id=log.compartment_id,
            ullage=log.ullage,
            trim=log.trim,
            heel=log.heel,
            base_volume=log.base_volume,
            heel_correction=log.heel_correction,
            final_volume=log.final_volume,
            sound=log.sound,
            sync_status=log.sync_status.value,
        )
        if log.recorded_at is not None:
            obj.recorded_at = log.recorded_at
        self._db.add(obj)
        self._db.commit()
        self._db.refresh(obj)
        log.id = obj.id
        log.recorded_at = obj.recorded_at
        return log

    def list_pending(self) -> List[SoundingLog]:
        return [
            _log_from_orm(obj)
            for obj in (
                self._db.query(SoundingLogORM)
                .filter(SoundingLogORM.sync_status == SyncStatus.PENDING.value)
                .order_by(SoundingLogORM.recorded_at, SoundingLogORM.id)
                .all()
            )
        ]

    def mark_synced(self, log_ids: Iterable[int]) -> None:
        now = _utc_now()
        for obj in self._fetch(log_ids):
            obj.sync_status = SyncStatus.SYNCED.value
            obj.synced_at = now
        self._db.commit()

    def mark_failed(self, log_ids: Iterable[int]) -> None:
        for obj in self._fetch(log_ids):
            obj.sync_status = SyncStatus.FAILED.value
        self._db.commit()

    def count_by_status(self, status: SyncStatus) -> int:
        return (
            self._db.query(SoundingLogORM)
            .filter(SoundingLogORM.sync_status == status.value)
            .count()
        )

    def count(self) -> int:
        return self._db.query(SoundingLogORM).count()

    def _fetch(self, log_ids: Iterable[int]) -> List[SoundingLogORM]:
        ids = list(dict.fromkeys(log_ids))
        if not ids:
            return []
        objs = self._db.query(SoundingLogORM).filter(SoundingLogORM.id.in_(ids)).all()
        found = {obj.id for obj in objs}
        missing = [i for i in ids if i not in found]
        if missing:
            raise ValueError(f"SoundingLog with id {missing[0]} not found")
        return objs
