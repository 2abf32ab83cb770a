"""
Recovery Persistence Store

Point reads and writes for enrollments, task instances, completions and
symptom reports over a SQLAlchemy session.

Connectivity failures surface as TransientStoreError. The store never
retries; callers decide whether a failure is fatal.
"""

from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy import func, inspect
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from core.exceptions import AlreadyEnrolledError, TransientStoreError
from models import RecoveryEnrollment, RecoveryTaskCompletion, RecoveryTaskInstance, SymptomReport
from services.recovery_catalog import TaskTemplate

logger = logging.getLogger(__name__)


class RecoveryStore:
    """SQLAlchemy-backed persistence for the recovery tracker."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _guard(self, operation: str):
        try:
            yield
        except (OperationalError, InterfaceError) as e:
            logger.error(
                f"Recovery store {operation} failed: {e}",
                extra={"extra_fields": {"operation": operation}},
            )
            self.db.rollback()
            raise TransientStoreError(f"Storage unavailable during {operation}") from e

    def commit(self) -> None:
        with self._guard("commit"):
            self.db.commit()

    @staticmethod
    def snapshot(obj) -> Dict[str, Any]:
        """Column values of a loaded row, read without touching the database."""
        return {attr.key: getattr(obj, attr.key) for attr in inspect(obj).mapper.column_attrs}

    @staticmethod
    def restore(obj, values: Dict[str, Any]) -> None:
        """
        Put snapshot values back as committed state.

        A rollback expires every row in the session; restoring keeps a row
        that was committed earlier readable while the database is down.
        """
        for key, value in values.items():
            set_committed_value(obj, key, value)

    # ============ Enrollment ============

    def fetch_enrollment(self, patient_id: str) -> Optional[RecoveryEnrollment]:
        with self._guard("fetch_enrollment"):
            return self.db.query(RecoveryEnrollment).filter(
                RecoveryEnrollment.patient_id == patient_id
            ).first()

    def insert_enrollment(self, patient_id: str, surgery_type: str, start_date: date) -> RecoveryEnrollment:
        enrollment = RecoveryEnrollment(
            patient_id=patient_id,
            surgery_type=surgery_type,
            start_date=start_date,
        )
        with self._guard("insert_enrollment"):
            self.db.add(enrollment)
            try:
                self.db.commit()
            except IntegrityError:
                # Another request enrolled this patient first
                self.db.rollback()
                raise AlreadyEnrolledError(patient_id)
            self.db.refresh(enrollment)
        return enrollment

    def update_enrollment(
        self,
        enrollment: RecoveryEnrollment,
        surgery_type: Optional[str] = None,
        start_date: Optional[date] = None,
    ) -> RecoveryEnrollment:
        with self._guard("update_enrollment"):
            if surgery_type is not None:
                enrollment.surgery_type = surgery_type
            if start_date is not None:
                enrollment.start_date = start_date
            self.db.commit()
            self.db.refresh(enrollment)
        return enrollment

    # ============ Task instances ============

    def fetch_task_instances(self, patient_id: str, day_number: int) -> List[RecoveryTaskInstance]:
        with self._guard("fetch_task_instances"):
            return self.db.query(RecoveryTaskInstance).filter(
                RecoveryTaskInstance.patient_id == patient_id,
                RecoveryTaskInstance.day_number == day_number,
            ).order_by(
                RecoveryTaskInstance.sequence,
                RecoveryTaskInstance.template_key,
            ).all()

    def fetch_task_instance(self, task_instance_id: UUID) -> Optional[RecoveryTaskInstance]:
        with self._guard("fetch_task_instance"):
            return self.db.query(RecoveryTaskInstance).filter(
                RecoveryTaskInstance.id == task_instance_id
            ).first()

    def insert_task_instance(
        self,
        enrollment: RecoveryEnrollment,
        template: TaskTemplate,
    ) -> Optional[RecoveryTaskInstance]:
        """
        Materialize one template for the enrollment's patient.

        Runs inside a savepoint. Returns None when a row for the same
        (patient, day, template) already exists; the existing row wins.
        Does not commit.
        """
        instance = RecoveryTaskInstance(
            patient_id=enrollment.patient_id,
            enrollment_id=enrollment.id,
            day_number=template.day_number,
            template_key=template.key,
            surgery_type=template.surgery_type.value,
            sequence=template.sequence,
            title=template.title,
            description=template.description,
            category=template.category.value,
            estimated_duration_minutes=template.estimated_duration_minutes,
            difficulty_level=template.difficulty_level,
        )
        with self._guard("insert_task_instance"):
            try:
                with self.db.begin_nested():
                    self.db.add(instance)
            except IntegrityError:
                logger.info(
                    f"Task {template.key} day {template.day_number} already materialized for {enrollment.patient_id}",
                    extra={"extra_fields": {"patient_id": enrollment.patient_id, "day_number": template.day_number}},
                )
                return None
        return instance

    # ============ Completions ============

    def fetch_completion(self, task_instance_id: UUID) -> Optional[RecoveryTaskCompletion]:
        with self._guard("fetch_completion"):
            return self.db.query(RecoveryTaskCompletion).filter(
                RecoveryTaskCompletion.task_instance_id == task_instance_id
            ).first()

    def fetch_completions(self, task_instance_ids: Iterable[UUID]) -> Dict[UUID, RecoveryTaskCompletion]:
        ids = list(task_instance_ids)
        if not ids:
            return {}
        with self._guard("fetch_completions"):
            rows = self.db.query(RecoveryTaskCompletion).filter(
                RecoveryTaskCompletion.task_instance_id.in_(ids)
            ).all()
        return {row.task_instance_id: row for row in rows}

    def upsert_completion(
        self,
        task_instance_id: UUID,
        is_completed: bool,
        notes: Optional[str],
        completed_at: Optional[datetime],
    ) -> RecoveryTaskCompletion:
        """Write the completion row for an instance; last write wins."""
        with self._guard("upsert_completion"):
            record = self.fetch_completion(task_instance_id)
            if record is None:
                record = RecoveryTaskCompletion(task_instance_id=task_instance_id)
                try:
                    with self.db.begin_nested():
                        self._apply_completion(record, is_completed, notes, completed_at)
                        self.db.add(record)
                except IntegrityError:
                    # Concurrent first write; update the row that won
                    record = self.fetch_completion(task_instance_id)
                    self._apply_completion(record, is_completed, notes, completed_at)
            else:
                self._apply_completion(record, is_completed, notes, completed_at)
            self.db.commit()
            self.db.refresh(record)
        return record

    @staticmethod
    def _apply_completion(record, is_completed, notes, completed_at):
        record.is_completed = is_completed
        record.notes = notes
        record.completed_at = completed_at

    def count_completion_totals(self, patient_id: str) -> Tuple[int, int]:
        """(completed, total) across every materialized day for the patient."""
        with self._guard("count_completion_totals"):
            total = self.db.query(func.count(RecoveryTaskInstance.id)).filter(
                RecoveryTaskInstance.patient_id == patient_id
            ).scalar() or 0
            completed = self.db.query(func.count(RecoveryTaskCompletion.id)).join(
                RecoveryTaskInstance,
                RecoveryTaskCompletion.task_instance_id == RecoveryTaskInstance.id,
            ).filter(
                RecoveryTaskInstance.patient_id == patient_id,
                RecoveryTaskCompletion.is_completed.is_(True),
            ).scalar() or 0
        return completed, total

    def count_materialized_days(self, patient_id: str) -> int:
        with self._guard("count_materialized_days"):
            return self.db.query(
                func.count(func.distinct(RecoveryTaskInstance.day_number))
            ).filter(
                RecoveryTaskInstance.patient_id == patient_id
            ).scalar() or 0

    # ============ Symptom reports ============

    def insert_symptom_report(self, report: SymptomReport) -> SymptomReport:
        with self._guard("insert_symptom_report"):
            self.db.add(report)
            self.db.commit()
            self.db.refresh(report)
        return report

    def fetch_symptom_reports(self, patient_id: str, limit: int = 20) -> List[SymptomReport]:
        with self._guard("fetch_symptom_reports"):
            return self.db.query(SymptomReport).filter(
                SymptomReport.patient_id == patient_id
            ).order_by(SymptomReport.created_at.desc()).limit(limit).all()
