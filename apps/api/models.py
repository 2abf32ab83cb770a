from sqlalchemy import Column, Integer, Boolean, CheckConstraint, Date, DateTime, ForeignKey, Text, String, Index, UniqueConstraint, JSON, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from core.database import Base
import uuid


JSONType = JSON().with_variant(JSONB(), "postgresql")


class RecoveryEnrollment(Base):
    """
    A patient's enrollment in a post-surgery recovery program.

    One row per patient. The current program day is never stored: it is
    derived from start_date on every read (see services.recovery_days).
    surgery_type and start_date change only through an explicit journey
    update.
    """
    __tablename__ = "recovery_enrollment"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id = Column(String(128), nullable=False)  # Opaque id from the identity provider
    surgery_type = Column(Text, nullable=False)  # 'heart', 'knee', 'cesarean', 'other'
    start_date = Column(Date, nullable=False)  # Surgery date; day 1 of the program
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    task_instances = relationship("RecoveryTaskInstance", back_populates="enrollment")

    __table_args__ = (
        UniqueConstraint("patient_id", name="uq_recovery_enrollment_patient"),
    )


class RecoveryTaskInstance(Base):
    """
    A catalog task materialized for one patient on one program day.

    Template fields are copied at creation so later catalog edits never
    change tasks that were already issued. The (patient, day, template_key)
    uniqueness makes concurrent first reads converge on one row.
    """
    __tablename__ = "recovery_task_instance"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id = Column(String(128), nullable=False)
    enrollment_id = Column(Uuid, ForeignKey("recovery_enrollment.id"), nullable=False)
    day_number = Column(Integer, nullable=False)

    # Catalog provenance
    template_key = Column(Text, nullable=False)
    surgery_type = Column(Text, nullable=False)  # Program the task was issued under
    sequence = Column(Integer, nullable=False)  # Day-local display order

    # Copied template fields
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(Text, nullable=False)  # exercise, breathing, therapy, care, medication, general
    estimated_duration_minutes = Column(Integer, nullable=True)
    difficulty_level = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    enrollment = relationship("RecoveryEnrollment", back_populates="task_instances")
    completion = relationship("RecoveryTaskCompletion", back_populates="task_instance", uselist=False)

    __table_args__ = (
        Index("ix_recovery_task_instance_patient_day", "patient_id", "day_number"),
        UniqueConstraint("patient_id", "day_number", "template_key", name="uq_recovery_task_instance_patient_day_template"),
        CheckConstraint("day_number >= 1", name="ck_recovery_task_instance_day_positive"),
        CheckConstraint("difficulty_level BETWEEN 1 AND 5", name="ck_recovery_task_instance_difficulty"),
    )


class RecoveryTaskCompletion(Base):
    """
    Completion state for one task instance.

    completed_at is set if and only if is_completed is true. Written only
    in response to the patient; never changed automatically.
    """
    __tablename__ = "recovery_task_completion"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    task_instance_id = Column(Uuid, ForeignKey("recovery_task_instance.id"), nullable=False)
    is_completed = Column(Boolean, default=False, nullable=False)
    notes = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    task_instance = relationship("RecoveryTaskInstance", back_populates="completion")

    __table_args__ = (
        UniqueConstraint("task_instance_id", name="uq_recovery_task_completion_instance"),
    )


class SymptomReport(Base):
    """
    Patient-reported symptoms during recovery.

    requires_emergency is computed at submission (see services.symptom_triage)
    and doctor_notified mirrors it; delivering the notification is handled
    outside this service.
    """
    __tablename__ = "symptom_report"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id = Column(String(128), nullable=False)
    symptoms = Column(JSONType, nullable=False, default=dict)  # {"fever": true, "nausea": false, ...}
    severity_level = Column(Integer, nullable=False)  # 1 (mild) - 5 (severe)
    requires_emergency = Column(Boolean, default=False, nullable=False)
    doctor_notified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_symptom_report_patient_created", "patient_id", "created_at"),
        CheckConstraint("severity_level BETWEEN 1 AND 5", name="ck_symptom_report_severity"),
    )
