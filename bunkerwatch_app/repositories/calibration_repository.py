"""
Calibration tables (main sounding and heel correction) per compartment.

Rows are keyed by (compartment_id, ullage) and only ever replaced wholesale
when a new vessel data package is installed.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

from sqlalchemy import Integer, Float
from sqlalchemy.orm import Mapped, mapped_column, Session

from bunkerwatch_app.config.grids import HEEL_COLUMNS, TRIM_COLUMNS
from bunkerwatch_app.models import HeelCorrectionRow, MainSoundingRow
from bunkerwatch_app.repositories.database import Base


class MainSoundingORM(Base):
    __tablename__ = "main_sounding_data"

    compartment_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ullage: Mapped[float] = mapped_column(Float, primary_key=True)
    sound: Mapped[int | None] = mapped_column(Integer, nullable=True)
    lcg: Mapped[float] = mapped_column(Float, default=0.0)
    tcg: Mapped[float] = mapped_column(Float, default=0.0)
    vcg: Mapped[float] = mapped_column(Float, default=0.0)
    iy: Mapped[float] = mapped_column(Float, default=0.0)
    trim_minus_4_0: Mapped[float] = mapped_column(Float, nullable=False)
    trim_minus_3_0: Mapped[float] = mapped_column(Float, nullable=False)
    trim_minus_2_0: Mapped[float] = mapped_column(Float, nullable=False)
    trim_minus_1_5: Mapped[float] = mapped_column(Float, nullable=False)
    trim_minus_1_0: Mapped[float] = mapped_column(Float, nullable=False)
    trim_minus_0_5: Mapped[float] = mapped_column(Float, nullable=False)
    trim_0_0: Mapped[float] = mapped_column(Float, nullable=False)
    trim_plus_0_5: Mapped[float] = mapped_column(Float, nullable=False)
    trim_plus_1_0: Mapped[float] = mapped_column(Float, nullable=False)
    trim_plus_1_5: Mapped[float] = mapped_column(Float, nullable=False)
    trim_plus_2_0: Mapped[float] = mapped_column(Float, nullable=False)
    trim_plus_3_0: Mapped[float] = mapped_column(Float, nullable=False)
    trim_plus_4_0: Mapped[float] = mapped_column(Float, nullable=False)


class HeelCorrectionORM(Base):
    __tablename__ = "heel_correction_data"

    compartment_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ullage: Mapped[float] = mapped_column(Float, primary_key=True)
    heel_minus_3_0: Mapped[float] = mapped_column(Float, nullable=False)
    heel_minus_2_0: Mapped[float] = mapped_column(Float, nullable=False)
    heel_minus_1_5: Mapped[float] = mapped_column(Float, nullable=False)
    heel_minus_1_0: Mapped[float] = mapped_column(Float, nullable=False)
    heel_minus_0_5: Mapped[float] = mapped_column(Float, nullable=False)
    heel_0_0: Mapped[float] = mapped_column(Float, nullable=False)
    heel_plus_0_5: Mapped[float] = mapped_column(Float, nullable=False)
    heel_plus_1_0: Mapped[float] = mapped_column(Float, nullable=False)
    heel_plus_1_5: Mapped[float] = mapped_column(Float, nullable=False)
    heel_plus_2_0: Mapped[float] = mapped_column(Float, nullable=False)
    heel_plus_3_0: Mapped[float] = mapped_column(Float, nullable=False)


def _main_row_from_orm(obj: MainSoundingORM) -> MainSoundingRow:
    return MainSoundingRow(
        ullage=obj.ullage,
        sound=obj.sound,
        lcg=obj.lcg,
        tcg=obj.tcg,
        vcg=obj.vcg,
        iy=obj.iy,
        volumes={c: getattr(obj, c) for c in TRIM_COLUMNS},
    )


def _heel_row_from_orm(obj: HeelCorrectionORM) -> HeelCorrectionRow:
    return HeelCorrectionRow(
        ullage=obj.ullage,
        corrections={c: getattr(obj, c) for c in HEEL_COLUMNS},
    )


class CalibrationRepository:
    """Read access for the sounding engine plus bulk replace for ingestion."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def get_main_sounding_rows(self, compartment_id: int) -> List[MainSoundingRow]:
        return [
            _main_row_from_orm(obj)
            for obj in (
                self._db.query(MainSoundingORM)
                .filter(MainSoundingORM.compartment_id == compartment_id)
                .order_by(MainSoundingORM.ullage)
                .all()
            )
        ]

    def get_heel_correction_rows(self, compartment_id: int) -> List[HeelCorrectionRow]:
        return [
            _heel_row_from_orm(obj)
            for obj in (
                self._db.query(HeelCorrectionORM)
                .filter(HeelCorrectionORM.compartment_id == compartment_id)
                .order_by(HeelCorrectionORM.ullage)
                .all()
            )
        ]

    def count_main_rows(self) -> int:
        return self._db.query(MainSoundingORM).count()

    def count_heel_rows(self) -> int:
        return self._db.query(HeelCorrectionORM).count()

    def clear(self, commit: bool = True) -> None:
        self._db.query(MainSoundingORM).delete()
        self._db.query(HeelCorrectionORM).delete()
        if commit:
            self._db.commit()

    def replace_all(
        self,
        main_rows: Dict[int, Sequence[MainSoundingRow]],
        heel_rows: Dict[int, Sequence[HeelCorrectionRow]],
        commit: bool = True,
    ) -> None:
        """Drop every stored calibration row and insert the given tables."""
        self.clear(commit=False)
        for compartment_id, rows in main_rows.items():
            self._db.add_all(
                MainSoundingORM(
                    compartment_id=compartment_id,
                    ullage=r.ullage,
                    sound=r.sound,
                    lcg=r.lcg,
                    tcg=r.tcg,
                    vcg=r.vcg,
                    iy=r.iy,
                    **{c: r.volume(c) for c in TRIM_COLUMNS},
                )
                for r in rows
            )
        for compartment_id, rows in heel_rows.items():
            self._db.add_all(
                HeelCorrectionORM(
                    compartment_id=compartment_id,
                    ullage=r.ullage,
                    **{c: r.correction(c) for c in HEEL_COLUMNS},
                )
                for r in rows
            )
        if commit:
            self._db.commit()
