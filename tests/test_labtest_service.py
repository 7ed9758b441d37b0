"""Tests for the lab-test lookup chain and lab-test CRUD."""

from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

from core.exceptions import NotFoundError
from models.lab_test import LabTest
from models.patient import Patient
from schemas.requests import LabTestRequest, LabTestUpdateRequest, VisitCreateRequest, parse_request
from services.labtest_service import (
    VISIT_CHAIN,
    LookupStrategy,
    add_lab_test,
    count_lab_tests,
    delete_lab_test,
    direct_filter,
    get_all_lab_tests,
    get_lab_test,
    lab_tests_by_visit,
    lab_tests_by_visit_and_patient,
    lab_tests_by_visit_direct,
    to_lab_test_view,
    update_lab_test,
)
from services import labtest_service
from services.registration_service import register_patient
from services.visit_service import create_visit


def _broken(db, visit_id):
    raise OperationalError("SELECT ...", {}, Exception("no such column: visit_id"))


@pytest.fixture
def visit(db, registration_factory):
    register_patient(db, registration_factory())
    return create_visit(db, parse_request(VisitCreateRequest, {"patientId": "001"}))


@pytest.fixture
def lab_tests(db, visit):
    rows = [
        LabTest(visit_id=visit.id, patient_id="001", test_name="CBC"),
        LabTest(visit_id=visit.id, patient_id="001", test_name="ESR"),
        # legacy row without the denormalised patient id
        LabTest(visit_id=visit.id, patient_id=None, test_name="Lipid profile"),
        LabTest(visit_id=visit.id + 100, patient_id="001", test_name="Other visit"),
    ]
    db.add_all(rows)
    db.commit()
    return rows


class TestLookupChain:

    @pytest.mark.parametrize("strategy", VISIT_CHAIN, ids=lambda s: s.name)
    def test_each_strategy_finds_the_visit_tests(self, db, visit, lab_tests, strategy):
        names = [t.test_name for t in strategy.fetch(db, visit.id)]
        assert names == ["CBC", "ESR", "Lipid profile"]

    def test_by_visit_uses_first_strategy(self, db, visit, lab_tests):
        assert [t.test_name for t in lab_tests_by_visit(db, visit.id)] == ["CBC", "ESR", "Lipid profile"]

    def test_failing_strategies_fall_through(self, db, visit, lab_tests):
        chain = (
            LookupStrategy("broken_one", _broken),
            LookupStrategy("broken_two", _broken),
        ) + VISIT_CHAIN[2:]

        assert len(lab_tests_by_visit(db, visit.id, chain)) == 3

    def test_empty_result_does_not_fall_through(self, db, visit, lab_tests):
        calls = []

        def empty(db, visit_id):
            calls.append("empty")
            return []

        def never(db, visit_id):
            calls.append("never")
            return []

        chain = (LookupStrategy("empty", empty), LookupStrategy("never", never))
        assert lab_tests_by_visit(db, visit.id, chain) == []
        assert calls == ["empty"]

    def test_all_strategies_failing_returns_empty(self, db, visit, lab_tests):
        chain = tuple(LookupStrategy(s.name, _broken) for s in VISIT_CHAIN)
        assert lab_tests_by_visit(db, visit.id, chain) == []

    def test_result_is_superset_of_direct_filter(self, db, visit, lab_tests):
        direct = {t.test_id for t in direct_filter(db, visit.id)}
        resolved = {t.test_id for t in lab_tests_by_visit(db, visit.id)}
        assert direct <= resolved

    def test_unknown_visit_is_empty(self, db, visit, lab_tests):
        assert lab_tests_by_visit(db, 9999) == []

    def test_failed_strategy_keeps_pending_work(self, db, visit, lab_tests):
        db.add(Patient(patient_id="777", surname="Menon", name="Ravi", national_id="999988887777"))
        chain = (LookupStrategy("broken", _broken),) + VISIT_CHAIN

        assert len(lab_tests_by_visit(db, visit.id, chain)) == 3
        db.commit()

        assert db.query(Patient).filter(Patient.patient_id == "777").count() == 1


class TestByVisitAndPatient:

    def test_filters_on_both_ids(self, db, visit, lab_tests):
        names = [t.test_name for t in lab_tests_by_visit_and_patient(db, visit.id, "001")]
        assert names == ["CBC", "ESR"]

    def test_stale_patient_id_falls_back_to_visit(self, db, visit, lab_tests):
        names = [t.test_name for t in lab_tests_by_visit_and_patient(db, visit.id, "042")]
        assert names == ["CBC", "ESR", "Lipid profile"]


class TestByVisitDirect:

    def test_native_query(self, db, visit, lab_tests):
        assert len(lab_tests_by_visit_direct(db, visit.id)) == 3

    def test_no_rows(self, db, visit):
        assert lab_tests_by_visit_direct(db, visit.id) == []

    def test_failed_query_keeps_pending_work(self, db, visit, lab_tests, monkeypatch):
        monkeypatch.setattr(labtest_service, "native_sql", _broken)
        db.add(Patient(patient_id="777", surname="Menon", name="Ravi", national_id="999988887777"))

        assert lab_tests_by_visit_direct(db, visit.id) == []
        db.commit()

        assert db.query(Patient).filter(Patient.patient_id == "777").count() == 1


class TestLabTestCrud:

    def test_add_applies_defaults(self, db, visit):
        lab_test = add_lab_test(db, parse_request(LabTestRequest, {"visitId": visit.id, "name": "  "}))

        assert lab_test.test_name == "Unknown Test"
        assert lab_test.result == ""
        assert lab_test.reference_range == "Pending"
        assert lab_test.status == "pending"
        assert lab_test.patient_id == "001"
        assert lab_test.test_given_at is not None
        assert lab_test.result_updated_at is None

    def test_add_accepts_snake_case_names(self, db, visit):
        lab_test = add_lab_test(
            db,
            parse_request(
                LabTestRequest,
                {"visit_id": visit.id, "test_name": "HbA1c", "reference_range": "4-5.6%"},
            ),
        )
        assert lab_test.test_name == "HbA1c"
        assert lab_test.reference_range == "4-5.6%"

    def test_add_with_result_stamps_result_time(self, db, visit):
        lab_test = add_lab_test(
            db, parse_request(LabTestRequest, {"visitId": visit.id, "name": "CBC", "result": "Normal"})
        )
        assert lab_test.result_updated_at is not None

    def test_add_for_unknown_visit(self, db, visit):
        with pytest.raises(NotFoundError):
            add_lab_test(db, parse_request(LabTestRequest, {"visitId": 9999, "name": "CBC"}))

    def test_update_result_stamps_time(self, db, visit):
        lab_test = add_lab_test(db, parse_request(LabTestRequest, {"visitId": visit.id, "name": "CBC"}))

        updated = update_lab_test(
            db, lab_test.test_id, parse_request(LabTestUpdateRequest, {"result": "Low Hb"})
        )
        assert updated.result == "Low Hb"
        assert updated.result_updated_at is not None

    def test_update_without_result_keeps_timestamp_empty(self, db, visit):
        lab_test = add_lab_test(db, parse_request(LabTestRequest, {"visitId": visit.id, "name": "CBC"}))

        updated = update_lab_test(
            db, lab_test.test_id, parse_request(LabTestUpdateRequest, {"status": "completed"})
        )
        assert updated.status == "completed"
        assert updated.result_updated_at is None

    def test_update_explicit_result_time_wins(self, db, visit):
        lab_test = add_lab_test(db, parse_request(LabTestRequest, {"visitId": visit.id, "name": "CBC"}))
        stamp = datetime(2024, 1, 2, 3, 4, 5)

        updated = update_lab_test(
            db,
            lab_test.test_id,
            parse_request(LabTestUpdateRequest, {"result": "Normal", "resultUpdatedAt": stamp.isoformat()}),
        )
        assert updated.result_updated_at == stamp

    def test_update_unknown(self, db):
        with pytest.raises(NotFoundError):
            update_lab_test(db, 1, parse_request(LabTestUpdateRequest, {"status": "x"}))

    def test_delete_and_count(self, db, visit, lab_tests):
        test_id = lab_tests[0].test_id
        assert count_lab_tests(db) == 4
        delete_lab_test(db, test_id)
        assert count_lab_tests(db) == 3
        assert len(get_all_lab_tests(db)) == 3

        with pytest.raises(NotFoundError):
            delete_lab_test(db, test_id)

    def test_view_formats_dates(self, db, visit):
        lab_test = add_lab_test(
            db,
            parse_request(
                LabTestRequest,
                {"visitId": visit.id, "name": "CBC", "testGivenAt": "2024-03-05T14:05:09"},
            ),
        )
        view = to_lab_test_view(get_lab_test(db, lab_test.test_id))
        assert view.formatted_test_date == "2024-03-05 14:05:09"
        assert view.formatted_result_date is None
        assert view.to_dict()["referenceRange"] == "Pending"
