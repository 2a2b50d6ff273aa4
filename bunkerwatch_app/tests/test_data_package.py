"""Tests for data package validation, installation and the sounding service."""

from __future__ import annotations

import copy
import json

import pytest

from bunkerwatch_app.models import SoundingFailure, SoundingSuccess, SyncStatus
from bunkerwatch_app.repositories.calibration_repository import CalibrationRepository
from bunkerwatch_app.repositories.sounding_log_repository import SoundingLogRepository
from bunkerwatch_app.repositories.sync_metadata_repository import SyncMetadataRepository
from bunkerwatch_app.repositories.vessel_repository import VesselRepository
from bunkerwatch_app.services.data_package import (
    DataPackageError,
    DataPackageService,
    load_data_package_file,
    parse_data_package,
)
from bunkerwatch_app.services.sounding import SoundingService

from conftest import LINEAR_ID, NO_HEEL_ID, linear_heel, linear_volume


class TestParseDataPackage:
    def test_envelope_is_unwrapped(self, package_payload):
        package = parse_data_package(package_payload)
        assert package.vessel.vessel_id == 42
        assert package.vessel.package_version == "3"
        assert [c.compartment_id for c in package.compartments] == [LINEAR_ID, NO_HEEL_ID]
        assert package.compartments[0].capacity_m3 == 1200.0
        assert len(package.main_sounding[LINEAR_ID]) == 5
        assert NO_HEEL_ID not in package.heel_correction

    def test_failed_envelope(self):
        with pytest.raises(DataPackageError, match="Vessel not found"):
            parse_data_package({"success": False, "data": None, "error": "Vessel not found"})

    def test_missing_trim_column(self, package_payload):
        payload = copy.deepcopy(package_payload["data"])
        del payload["calibration_data"][str(LINEAR_ID)]["main_sounding"][1]["trim_plus_1_5"]
        with pytest.raises(DataPackageError) as exc:
            parse_data_package(payload)
        assert "ullage 50.0" in exc.value.message
        assert "trim_plus_1_5" in exc.value.message

    def test_missing_heel_column(self, package_payload):
        payload = copy.deepcopy(package_payload["data"])
        del payload["calibration_data"][str(LINEAR_ID)]["heel_correction"][0]["heel_0_0"]
        with pytest.raises(DataPackageError, match="heel_0_0"):
            parse_data_package(payload)

    def test_non_numeric_volume(self, package_payload):
        payload = copy.deepcopy(package_payload["data"])
        payload["calibration_data"][str(LINEAR_ID)]["main_sounding"][0]["trim_0_0"] = "n/a"
        with pytest.raises(DataPackageError, match="not numeric"):
            parse_data_package(payload)

    def test_duplicate_ullage(self, package_payload):
        payload = copy.deepcopy(package_payload["data"])
        rows = payload["calibration_data"][str(LINEAR_ID)]["main_sounding"]
        rows.append(dict(rows[0]))
        with pytest.raises(DataPackageError, match="duplicate main sounding ullage 0.0"):
            parse_data_package(payload)

    def test_calibration_for_unknown_compartment(self, package_payload):
        payload = copy.deepcopy(package_payload["data"])
        payload["calibration_data"]["77"] = {"main_sounding": [], "heel_correction": []}
        with pytest.raises(DataPackageError, match="compartment 77"):
            parse_data_package(payload)

    def test_non_numeric_vessel_id(self, package_payload):
        payload = copy.deepcopy(package_payload["data"])
        payload["vessel_id"] = "abc"
        with pytest.raises(DataPackageError, match="vessel_id is not an integer"):
            parse_data_package(payload)

    def test_string_ids_are_accepted(self, package_payload):
        payload = copy.deepcopy(package_payload["data"])
        payload["vessel_id"] = "42"
        payload["compartments"][0]["compartment_id"] = str(LINEAR_ID)
        package = parse_data_package(payload)
        assert package.vessel.vessel_id == 42
        assert package.compartments[0].compartment_id == LINEAR_ID

    def test_non_numeric_compartment_id(self, package_payload):
        payload = copy.deepcopy(package_payload["data"])
        payload["compartments"][1]["compartment_id"] = "x"
        with pytest.raises(DataPackageError, match="Compartment entry 1: compartment_id"):
            parse_data_package(payload)

    def test_compartment_entry_not_an_object(self, package_payload):
        payload = copy.deepcopy(package_payload["data"])
        payload["compartments"].append("oops")
        with pytest.raises(DataPackageError, match="Compartment entry 2 must be an object"):
            parse_data_package(payload)

    def test_compartments_not_a_list(self, package_payload):
        payload = copy.deepcopy(package_payload["data"])
        payload["compartments"] = {"id": 1}
        with pytest.raises(DataPackageError, match="must be a list"):
            parse_data_package(payload)

    def test_calibration_block_not_an_object(self, package_payload):
        payload = copy.deepcopy(package_payload["data"])
        payload["calibration_data"][str(NO_HEEL_ID)] = [1, 2, 3]
        with pytest.raises(DataPackageError, match=f"compartment {NO_HEEL_ID} must be an object"):
            parse_data_package(payload)

    def test_calibration_row_not_an_object(self, package_payload):
        payload = copy.deepcopy(package_payload["data"])
        payload["calibration_data"][str(LINEAR_ID)]["heel_correction"][1] = 7
        with pytest.raises(DataPackageError, match="heel correction row 1"):
            parse_data_package(payload)

    def test_invalid_calibration_key(self, package_payload):
        payload = copy.deepcopy(package_payload["data"])
        payload["calibration_data"]["tank-a"] = {}
        with pytest.raises(DataPackageError, match="Compartment id in calibration data"):
            parse_data_package(payload)

    def test_duplicate_compartment(self, package_payload):
        payload = copy.deepcopy(package_payload["data"])
        payload["compartments"].append(dict(payload["compartments"][1]))
        with pytest.raises(DataPackageError, match=f"Compartment {NO_HEEL_ID} is listed more than once"):
            parse_data_package(payload)

    def test_fractional_sound_rounds_half_up(self, package_payload):
        payload = copy.deepcopy(package_payload["data"])
        rows = payload["calibration_data"][str(LINEAR_ID)]["main_sounding"]
        rows[0]["sound"] = 2.5
        rows[1]["sound"] = 1499.5
        parsed = parse_data_package(payload).main_sounding[LINEAR_ID]
        assert parsed[0].sound == 3
        assert parsed[1].sound == 1500

    def test_rows_are_sorted(self, package_payload):
        payload = copy.deepcopy(package_payload["data"])
        payload["calibration_data"][str(LINEAR_ID)]["main_sounding"].reverse()
        package = parse_data_package(payload)
        assert [r.ullage for r in package.main_sounding[LINEAR_ID]] == [0.0, 50.0, 100.0, 150.0, 200.0]

    def test_optional_geometry_defaults(self, package_payload):
        payload = copy.deepcopy(package_payload["data"])
        row = payload["calibration_data"][str(LINEAR_ID)]["main_sounding"][0]
        for key in ("sound", "lcg", "tcg", "vcg", "iy"):
            row.pop(key)
        parsed = parse_data_package(payload).main_sounding[LINEAR_ID][0]
        assert parsed.sound is None
        assert (parsed.lcg, parsed.tcg, parsed.vcg, parsed.iy) == (0.0, 0.0, 0.0, 0.0)

    def test_load_from_file(self, tmp_path, package_payload):
        path = tmp_path / "vessel_42.json"
        path.write_text(json.dumps(package_payload), encoding="utf-8")
        assert load_data_package_file(path).vessel.vessel_name == "MV TEST"

    def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DataPackageError, match="not valid JSON"):
            load_data_package_file(path)

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_data_package_file(tmp_path / "nope.json")


class TestDataPackageService:
    def test_install(self, db_session, package_payload):
        svc = DataPackageService(db_session)
        assert not svc.has_vessel_data()
        summary = svc.install(parse_data_package(package_payload))

        assert summary.vessel_name == "MV TEST"
        assert summary.compartments == 2
        assert summary.main_rows == 10
        assert summary.heel_rows == 3
        assert summary.calibration_rows == 13
        assert svc.has_vessel_data()

        vessel = VesselRepository(db_session).get_vessel()
        assert vessel.imo_number == "9876543"
        assert vessel.downloaded_at is not None
        meta = SyncMetadataRepository(db_session)
        assert meta.get("package_version") == "3"
        assert meta.get("vessel_id") == "42"
        assert meta.get("last_download") is not None

    def test_reinstall_replaces_everything(self, db_session, package_payload):
        svc = DataPackageService(db_session)
        svc.install(parse_data_package(package_payload))

        payload = copy.deepcopy(package_payload["data"])
        payload["package_version"] = "4"
        payload["compartments"] = payload["compartments"][:1]
        del payload["calibration_data"][str(NO_HEEL_ID)]
        svc.install(parse_data_package(payload))

        repo = CalibrationRepository(db_session)
        assert repo.get_main_sounding_rows(NO_HEEL_ID) == []
        assert repo.count_main_rows() == 5
        stats = svc.database_stats()
        assert stats["compartment_count"] == 1
        assert stats["package_version"] == "4"
        assert stats["heel_data_rows"] == 3

    def test_clear(self, db_session, package_payload):
        svc = DataPackageService(db_session)
        svc.install(parse_data_package(package_payload))
        svc.clear()

        assert not svc.has_vessel_data()
        stats = svc.database_stats()
        assert stats["vessel"] is None
        assert stats["compartment_count"] == 0
        assert stats["sounding_data_rows"] == 0
        assert stats["heel_data_rows"] == 0
        assert not stats["package_version"]

    def test_stats_count_pending_soundings(self, db_session, package_payload):
        svc = DataPackageService(db_session)
        svc.install(parse_data_package(package_payload))
        SoundingService(db_session).calculate(LINEAR_ID, 50.0, 0.0, record=True)
        stats = svc.database_stats()
        assert stats["pending_soundings"] == 1
        assert stats["total_soundings"] == 1
        assert stats["vessel"].vessel_name == "MV TEST"


class TestSoundingService:
    @pytest.fixture
    def installed(self, db_session, package_payload):
        DataPackageService(db_session).install(parse_data_package(package_payload))
        return db_session

    def test_calculate_from_database(self, installed):
        res = SoundingService(installed).calculate(LINEAR_ID, 87.5, 1.25, heel=-0.7)
        assert isinstance(res, SoundingSuccess)
        assert res.base_volume == pytest.approx(linear_volume(87.5, 1.25))
        assert res.heel_correction == pytest.approx(linear_heel(87.5, -0.7))

    def test_record_stores_pending_log(self, installed):
        res = SoundingService(installed).calculate(LINEAR_ID, 87.5, 1.25, heel=-0.7, record=True)
        logs = SoundingLogRepository(installed).list_pending()
        assert len(logs) == 1
        log = logs[0]
        assert log.vessel_id == 42
        assert log.compartment_id == LINEAR_ID
        assert log.heel == -0.7
        assert log.final_volume == pytest.approx(res.final_volume)
        assert log.sync_status is SyncStatus.PENDING

    def test_failure_is_not_recorded(self, installed):
        res = SoundingService(installed).calculate(LINEAR_ID, 87.5, 6.0, record=True)
        assert isinstance(res, SoundingFailure)
        assert "above maximum 4.0" in res.error
        assert SoundingLogRepository(installed).count() == 0

    def test_compartment_without_heel_table(self, installed):
        res = SoundingService(installed).calculate(NO_HEEL_ID, 50.0, 0.0, heel=1.0)
        assert isinstance(res, SoundingSuccess)
        assert res.heel_correction == 0.0
        assert res.warnings
