from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import Integer, String, Float, DateTime
from sqlalchemy.orm import Mapped, mapped_column, Session

from bunkerwatch_app.models import Compartment, Vessel
from bunkerwatch_app.repositories.database import Base


class VesselORM(Base):
    __tablename__ = "vessel_info"

    vessel_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    vessel_name: Mapped[str] = mapped_column(String(255), default="")
    imo_number: Mapped[str] = mapped_column(String(32), default="")
    package_version: Mapped[str] = mapped_column(String(64), default="")
    downloaded_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class CompartmentORM(Base):
    __tablename__ = "compartments"

    compartment_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    vessel_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    compartment_name: Mapped[str] = mapped_column(String(255), default="")
    capacity_m3: Mapped[float | None] = mapped_column(Float, nullable=True)


def _compartment_from_orm(obj: CompartmentORM) -> Compartment:
    return Compartment(
        compartment_id=obj.compartment_id,
        vessel_id=obj.vessel_id,
        compartment_name=obj.compartment_name,
        capacity_m3=obj.capacity_m3,
    )


class VesselRepository:
    """The single installed vessel and its compartments."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def get_vessel(self) -> Optional[Vessel]:
        obj = self._db.query(VesselORM).first()
        if obj is None:
            return None
        return Vessel(
            vessel_id=obj.vessel_id,
            vessel_name=obj.vessel_name,
            imo_number=obj.imo_number,
            package_version=obj.package_version,
            downloaded_at=obj.downloaded_at,
        )

    def set_vessel(self, vessel: Vessel, commit: bool = True) -> Vessel:
        """Replace the installed vessel record."""
        self._db.query(VesselORM).delete()
        self._db.add(
            VesselORM(
                vessel_id=vessel.vessel_id,
                vessel_name=vessel.vessel_name,
                imo_number=vessel.imo_number,
                package_version=vessel.package_version,
                downloaded_at=vessel.downloaded_at,
            )
        )
        if commit:
            self._db.commit()
        return vessel

    def list_compartments(self) -> List[Compartment]:
        return [
            _compartment_from_orm(obj)
            for obj in self._db.query(CompartmentORM).order_by(CompartmentORM.compartment_name).all()
        ]

    def get_compartment(self, compartment_id: int) -> Optional[Compartment]:
        obj = self._db.get(CompartmentORM, compartment_id)
        if not obj:
            return None
        return _compartment_from_orm(obj)

    def count_compartments(self) -> int:
        return self._db.query(CompartmentORM).count()

    def replace_compartments(self, compartments: Sequence[Compartment], commit: bool = True) -> None:
        self._db.query(CompartmentORM).delete()
        self._db.add_all(
            CompartmentORM(
                compartment_id=c.compartment_id,
                vessel_id=c.vessel_id,
                compartment_name=c.compartment_name,
                capacity_m3=c.capacity_m3,
            )
            for c in compartments
        )
        if commit:
            self._db.commit()

    def clear(self, commit: bool = True) -> None:
        self._db.query(VesselORM).delete()
        self._db.query(CompartmentORM).delete()
        if commit:
            self._db.commit()
