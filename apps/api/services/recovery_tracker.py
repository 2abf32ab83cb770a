"""
Recovery Program Tracker

Owns a patient's day-indexed recovery program:
- enrollment and journey updates
- copy-on-read materialization of each day's tasks from the catalog
- per-task completion toggles
- daily and overall completion stats

Day advancement is computed on read from the enrollment's start date; no
background job moves patients between days.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, List, Optional
from uuid import UUID
import logging

from core.exceptions import (
    AlreadyEnrolledError,
    NotEnrolledError,
    TransientStoreError,
    UnknownTaskInstanceError,
    ValidationError,
)
from models import RecoveryEnrollment, RecoveryTaskCompletion, RecoveryTaskInstance
from services.recovery_catalog import RecoveryCatalog, SurgeryType
from services.recovery_days import (
    ProgramStatus,
    completion_percentage,
    days_remaining,
    derive_current_day,
    program_status,
)
from services.recovery_store import RecoveryStore

logger = logging.getLogger(__name__)


@dataclass
class DailyTask:
    """A materialized task with its completion state (None = never toggled)."""
    instance: RecoveryTaskInstance
    completion: Optional[RecoveryTaskCompletion]

    @property
    def is_completed(self) -> bool:
        return bool(self.completion and self.completion.is_completed)


@dataclass
class DayTasks:
    """The tasks of one program day, with the day they were resolved for."""
    day_number: int
    tasks: List[DailyTask]


@dataclass
class CompletionStats:
    completed: int
    total: int
    percentage: int


@dataclass
class ProgramSummary:
    enrollment: RecoveryEnrollment
    program_name: str
    total_days: int
    current_day: int
    status: ProgramStatus
    days_remaining: int
    overall_completed: int
    overall_total: int
    overall_percentage: int
    materialized_days: int


class RecoveryProgramTracker:
    """
    Recovery program operations for one request.

    The store and catalog are injected so the tracker can run against any
    session; `today` is injectable for deterministic day arithmetic. Program
    length comes from the enrolled surgery type's catalog program.
    """

    def __init__(
        self,
        store: RecoveryStore,
        catalog: RecoveryCatalog,
        today: Optional[Callable[[], date]] = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.catalog = catalog
        self._today = today or date.today
        self._now = now or (lambda: datetime.now(timezone.utc))

    # ============ Enrollment ============

    def enroll(self, patient_id: str, surgery_type: str, start_date: date) -> RecoveryEnrollment:
        surgery = self._validate_surgery_type(surgery_type)
        self._validate_start_date(start_date)

        if self.store.fetch_enrollment(patient_id) is not None:
            raise AlreadyEnrolledError(patient_id)

        enrollment = self.store.insert_enrollment(patient_id, surgery.value, start_date)
        logger.info(
            f"Patient {patient_id} enrolled in {surgery.value} recovery program",
            extra={"extra_fields": {"patient_id": patient_id, "surgery_type": surgery.value, "start_date": start_date.isoformat()}},
        )

        self._warm_up(enrollment)
        return enrollment

    def update_enrollment(
        self,
        patient_id: str,
        surgery_type: Optional[str] = None,
        start_date: Optional[date] = None,
    ) -> RecoveryEnrollment:
        """
        Change the surgery type and/or start date.

        Days that were already materialized keep their tasks and completion
        history; only days materialized from now on use the new settings.
        """
        enrollment = self._require_enrollment(patient_id)

        surgery_value = None
        if surgery_type is not None:
            surgery_value = self._validate_surgery_type(surgery_type).value
        if start_date is not None:
            self._validate_start_date(start_date)

        enrollment = self.store.update_enrollment(enrollment, surgery_type=surgery_value, start_date=start_date)
        logger.info(
            f"Recovery journey updated for {patient_id}",
            extra={"extra_fields": {"patient_id": patient_id, "surgery_type": enrollment.surgery_type, "start_date": enrollment.start_date.isoformat()}},
        )
        return enrollment

    # ============ Daily tasks ============

    def program_days(self, enrollment: RecoveryEnrollment) -> int:
        return self.catalog.get_program(SurgeryType(enrollment.surgery_type)).total_days

    def current_day(self, enrollment: RecoveryEnrollment) -> int:
        return derive_current_day(enrollment.start_date, self._today(), self.program_days(enrollment))

    def get_day(self, patient_id: str, day_number: Optional[int] = None) -> DayTasks:
        """Tasks for `day_number`, or for today's program day when omitted."""
        enrollment = self._require_enrollment(patient_id)
        total_days = self.program_days(enrollment)
        if day_number is None:
            day_number = self.current_day(enrollment)
        elif not 1 <= day_number <= total_days:
            raise ValidationError(
                f"day must be between 1 and {total_days}", field="day"
            )

        instances = self._materialize_day(enrollment, day_number)
        completions = self.store.fetch_completions(i.id for i in instances)
        return DayTasks(
            day_number=day_number,
            tasks=[DailyTask(instance=i, completion=completions.get(i.id)) for i in instances],
        )

    def get_daily_tasks(self, patient_id: str, day_number: Optional[int] = None) -> List[DailyTask]:
        return self.get_day(patient_id, day_number).tasks

    def _materialize_day(self, enrollment: RecoveryEnrollment, day_number: int) -> List[RecoveryTaskInstance]:
        """
        Return the day's instances, creating them from the catalog on first read.

        A day with any instances is considered issued and is returned as-is,
        so a later surgery-type change never rewrites its task list.
        """
        existing = self.store.fetch_task_instances(enrollment.patient_id, day_number)
        if existing:
            return existing

        templates = self.catalog.fetch_templates(SurgeryType(enrollment.surgery_type), day_number)
        if not templates:
            return []

        created = 0
        for template in templates:
            if self.store.insert_task_instance(enrollment, template) is not None:
                created += 1
        self.store.commit()

        logger.info(
            f"Materialized {created}/{len(templates)} tasks for {enrollment.patient_id} day {day_number}",
            extra={"extra_fields": {"patient_id": enrollment.patient_id, "day_number": day_number}},
        )

        # Re-read so concurrent writers converge on the same rows
        return self.store.fetch_task_instances(enrollment.patient_id, day_number)

    def _warm_up(self, enrollment: RecoveryEnrollment) -> None:
        """
        Pre-generate day 1. Best effort: reads materialize lazily anyway.

        A store failure rolls the session back and expires the committed
        enrollment; its loaded values are restored so the caller can still
        read it without reaching the database.
        """
        patient_id = enrollment.patient_id
        loaded = self.store.snapshot(enrollment)
        try:
            self._materialize_day(enrollment, 1)
        except TransientStoreError as e:
            self.store.restore(enrollment, loaded)
            logger.warning(
                f"Day 1 warm-up failed for {patient_id}: {e.detail}",
                extra={"extra_fields": {"patient_id": patient_id}},
            )

    # ============ Completion ============

    def complete_task(
        self,
        patient_id: str,
        task_instance_id: UUID,
        is_completed: bool,
        notes: Optional[str] = None,
    ) -> RecoveryTaskCompletion:
        """
        Record completion state for one task.

        Marking an already-completed task complete again rewrites notes but
        keeps the original completion time. Un-completing clears it.
        """
        instance = self.store.fetch_task_instance(task_instance_id)
        if instance is None or instance.patient_id != patient_id:
            raise UnknownTaskInstanceError(str(task_instance_id))

        completed_at = None
        if is_completed:
            existing = self.store.fetch_completion(instance.id)
            if existing is not None and existing.is_completed and existing.completed_at is not None:
                completed_at = existing.completed_at
            else:
                completed_at = self._now()

        return self.store.upsert_completion(instance.id, is_completed, notes, completed_at)

    def get_today_completion_stats(self, patient_id: str) -> CompletionStats:
        tasks = self.get_daily_tasks(patient_id)
        completed = sum(1 for t in tasks if t.is_completed)
        total = len(tasks)
        return CompletionStats(
            completed=completed,
            total=total,
            percentage=completion_percentage(completed, total),
        )

    # ============ Summary ============

    def get_program_summary(self, patient_id: str) -> ProgramSummary:
        enrollment = self._require_enrollment(patient_id)
        today = self._today()
        program = self.catalog.get_program(SurgeryType(enrollment.surgery_type))
        total_days = program.total_days
        overall_completed, overall_total = self.store.count_completion_totals(patient_id)

        return ProgramSummary(
            enrollment=enrollment,
            program_name=program.program_name,
            total_days=total_days,
            current_day=derive_current_day(enrollment.start_date, today, total_days),
            status=program_status(enrollment.start_date, today, total_days),
            days_remaining=days_remaining(enrollment.start_date, today, total_days),
            overall_completed=overall_completed,
            overall_total=overall_total,
            overall_percentage=completion_percentage(overall_completed, overall_total),
            materialized_days=self.store.count_materialized_days(patient_id),
        )

    # ============ Helpers ============

    def _require_enrollment(self, patient_id: str) -> RecoveryEnrollment:
        enrollment = self.store.fetch_enrollment(patient_id)
        if enrollment is None:
            raise NotEnrolledError(patient_id)
        return enrollment

    def _validate_surgery_type(self, surgery_type: str) -> SurgeryType:
        try:
            surgery = SurgeryType(surgery_type)
        except ValueError:
            allowed = ", ".join(s.value for s in SurgeryType)
            raise ValidationError(f"surgery_type must be one of: {allowed}", field="surgery_type")
        if self.catalog.get_program(surgery) is None:
            raise ValidationError(f"No recovery program for {surgery.value}", field="surgery_type")
        return surgery

    def _validate_start_date(self, start_date: date) -> None:
        if start_date > self._today():
            raise ValidationError("start_date cannot be in the future", field="start_date")
