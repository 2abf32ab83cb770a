"""
Tests for symptom triage and symptom report persistence.
"""
import pytest
from datetime import datetime, timedelta, timezone

from core.exceptions import ValidationError
from services.symptom_triage import (
    EMERGENCY_SYMPTOMS,
    list_symptom_reports,
    requires_emergency,
    submit_symptom_report,
)


class TestRequiresEmergency:
    def test_mild_symptoms(self):
        assert not requires_emergency({"nausea": True, "fatigue": True}, 2)

    def test_high_severity_alone(self):
        assert requires_emergency({}, 4)
        assert requires_emergency({}, 5)

    def test_severity_three_is_not_emergency(self):
        assert not requires_emergency({"swelling": True}, 3)

    @pytest.mark.parametrize("symptom", sorted(EMERGENCY_SYMPTOMS))
    def test_any_red_flag(self, symptom):
        assert requires_emergency({symptom: True}, 1)

    def test_red_flag_reported_false(self):
        assert not requires_emergency({"chest_pain": False}, 1)

    def test_red_flags(self):
        assert EMERGENCY_SYMPTOMS == {
            "severe_pain", "chest_pain", "difficulty_breathing", "irregular_heartbeat", "fever"
        }


class TestSubmitSymptomReport:
    def test_emergency_report(self, store, patient_id):
        report = submit_symptom_report(store, patient_id, {"fever": True, "chills": True}, 2)

        assert report.id is not None
        assert report.requires_emergency is True
        assert report.doctor_notified is True
        assert report.symptoms == {"fever": True, "chills": True}

    def test_routine_report(self, store, patient_id):
        report = submit_symptom_report(store, patient_id, {"fatigue": True}, 1)

        assert report.requires_emergency is False
        assert report.doctor_notified is False

    def test_unknown_symptom_rejected(self, store, patient_id):
        with pytest.raises(ValidationError) as exc:
            submit_symptom_report(store, patient_id, {"hiccups": True}, 1)
        assert exc.value.error_code == "VALIDATION_ERROR_SYMPTOMS"

    @pytest.mark.parametrize("severity", [0, 6])
    def test_severity_out_of_range(self, store, patient_id, severity):
        with pytest.raises(ValidationError) as exc:
            submit_symptom_report(store, patient_id, {}, severity)
        assert exc.value.error_code == "VALIDATION_ERROR_SEVERITY_LEVEL"

    def test_list_newest_first(self, store, patient_id):
        base = datetime(2025, 3, 10, 8, 0, tzinfo=timezone.utc)
        for hours, severity in [(0, 1), (2, 3), (1, 2)]:
            submit_symptom_report(
                store, patient_id, {}, severity, now=lambda h=hours: base + timedelta(hours=h)
            )
        submit_symptom_report(store, "other-patient", {}, 5, now=lambda: base)

        reports = list_symptom_reports(store, patient_id)

        assert [r.severity_level for r in reports] == [3, 2, 1]
        assert list_symptom_reports(store, patient_id, limit=1)[0].severity_level == 3
