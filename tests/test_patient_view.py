"""Tests for the flattened patient + latest visit view."""

import base64
from datetime import datetime

from models.patient import Patient
from models.visit import Visit
from services.patient_view import compose_patient_view, get_latest_visit, refresh_patient_view


def _patient(db, **fields) -> Patient:
    values = dict(patient_id="001", surname="Rao", name="Asha", national_id="123456789012", total_visits=0)
    values.update(fields)
    patient = Patient(**values)
    db.add(patient)
    db.commit()
    return patient


class TestComposePatientView:

    def test_patient_without_visits_has_no_overlay(self, db):
        view = compose_patient_view(db, _patient(db))

        assert view.patient_id == "001"
        assert view.name == "Asha"
        assert view.total_visits == 0
        assert view.bp is None
        assert view.status is None
        assert view.last_visit is None
        assert view.visit_time is None
        assert view.photo is None

    def test_latest_visit_is_overlaid(self, db):
        patient = _patient(db)
        db.add_all([
            Visit(patient_id="001", bp="110/70", status="Resolved", visit_date=datetime(2024, 3, 1, 9, 0)),
            Visit(
                patient_id="001",
                bp="140/90",
                weight="61kg",
                temperature="100.1°F",
                symptoms="Cough",
                complaint="Chest pain",
                status="Critical",
                op_no="OP12",
                reg_no="R5",
                visit_date=datetime(2024, 3, 5, 14, 5),
            ),
            Visit(patient_id="001", bp="120/80", status="Active", visit_date=datetime(2024, 2, 1, 8, 0)),
        ])
        db.commit()

        view = compose_patient_view(db, patient)

        assert view.bp == "140/90"
        assert view.weight == "61kg"
        assert view.temperature == "100.1°F"
        assert view.symptoms == "Cough"
        assert view.complaints == "Chest pain"
        assert view.status == "Critical"
        assert view.op_no == "OP12"
        assert view.reg_no == "R5"
        assert view.last_visit == "2024-03-05"
        assert view.visit_date == "2024-03-05"
        assert view.visit_time == "14:05 PM"

    def test_photo_is_embedded_as_data_url(self, db):
        view = compose_patient_view(db, _patient(db, photo=b"jpeg-bytes"))
        assert view.photo == "data:image/jpeg;base64," + base64.b64encode(b"jpeg-bytes").decode()

    def test_other_patients_visits_are_ignored(self, db):
        patient = _patient(db)
        _patient(db, patient_id="002", national_id="999988887777", name="Ravi")
        db.add(Visit(patient_id="002", bp="150/95", visit_date=datetime(2024, 3, 5)))
        db.commit()

        assert get_latest_visit(db, "001") is None
        assert compose_patient_view(db, patient).bp is None

    def test_refresh_reads_current_state(self, db):
        _patient(db)
        db.add(Visit(patient_id="001", status="Active", visit_date=datetime(2024, 3, 5)))
        db.commit()

        assert refresh_patient_view(db, "001").status == "Active"
