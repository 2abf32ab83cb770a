"""
Symptom triage for recovering patients.

A report needs emergency attention when the patient rates severity 4 or
higher, or ticks any red-flag symptom. Notifying the care team happens
outside this service; the report records that it should.
"""

from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional
import logging

from core.exceptions import ValidationError
from models import SymptomReport
from services.recovery_store import RecoveryStore

logger = logging.getLogger(__name__)

EMERGENCY_SEVERITY_THRESHOLD = 4

# Symptom key -> is a red flag on its own
SYMPTOMS: Dict[str, bool] = {
    # Pain & discomfort
    "severe_pain": True,
    "chest_pain": True,
    "headache": False,
    "muscle_pain": False,
    # Breathing & circulation
    "difficulty_breathing": True,
    "irregular_heartbeat": True,
    "swelling": False,
    "dizziness": False,
    # Infection signs
    "fever": True,
    "chills": False,
    "redness": False,
    "discharge": False,
    # Digestive & general
    "nausea": False,
    "fatigue": False,
    "appetite_loss": False,
    "sleep_issues": False,
}

EMERGENCY_SYMPTOMS = frozenset(key for key, red_flag in SYMPTOMS.items() if red_flag)


def requires_emergency(symptoms: Dict[str, bool], severity_level: int) -> bool:
    if severity_level >= EMERGENCY_SEVERITY_THRESHOLD:
        return True
    return any(symptoms.get(key) for key in EMERGENCY_SYMPTOMS)


def validate_symptoms(symptoms: Dict[str, bool]) -> None:
    unknown = sorted(set(symptoms) - set(SYMPTOMS))
    if unknown:
        raise ValidationError(f"Unknown symptoms: {', '.join(unknown)}", field="symptoms")


def submit_symptom_report(
    store: RecoveryStore,
    patient_id: str,
    symptoms: Dict[str, bool],
    severity_level: int,
    now: Optional[Callable[[], datetime]] = None,
) -> SymptomReport:
    """Persist a symptom report with its triage outcome."""
    validate_symptoms(symptoms)
    if not 1 <= severity_level <= 5:
        raise ValidationError("severity_level must be between 1 and 5", field="severity_level")

    emergency = requires_emergency(symptoms, severity_level)
    report = SymptomReport(
        patient_id=patient_id,
        symptoms={key: bool(value) for key, value in symptoms.items()},
        severity_level=severity_level,
        requires_emergency=emergency,
        doctor_notified=emergency,
        created_at=(now or (lambda: datetime.now(timezone.utc)))(),
    )
    report = store.insert_symptom_report(report)

    if emergency:
        flagged = sorted(k for k in EMERGENCY_SYMPTOMS if symptoms.get(k))
        logger.warning(
            f"Emergency symptom report from {patient_id}",
            extra={"extra_fields": {"patient_id": patient_id, "severity_level": severity_level, "red_flags": flagged}},
        )
    return report


def list_symptom_reports(store: RecoveryStore, patient_id: str, limit: int = 20) -> List[SymptomReport]:
    return store.fetch_symptom_reports(patient_id, limit=limit)
