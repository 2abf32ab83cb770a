"""
Recovery Journey API Router

Endpoints for:
- Browsing recovery programs
- Enrolling in and updating a recovery journey
- Viewing daily tasks and toggling completion
- Daily completion stats
- Symptom reports
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional
from uuid import UUID
from datetime import date, datetime

from core.database import get_db
from core.auth import get_current_patient_id
from services.recovery_catalog import RecoveryCatalog, SurgeryType, TaskCategory, load_catalog
from services.recovery_store import RecoveryStore
from services.recovery_tracker import DailyTask, RecoveryProgramTracker
from services import symptom_triage

router = APIRouter(prefix="/v1/recovery", tags=["Recovery Journey"])


# ============ Request/Response Models ============

class ProgramResponse(BaseModel):
    surgery_type: SurgeryType
    program_name: str
    description: Optional[str]
    total_days: int


class EnrollRequest(BaseModel):
    """Start a recovery journey. start_date is the surgery date."""
    surgery_type: SurgeryType
    start_date: date


class UpdateEnrollmentRequest(BaseModel):
    surgery_type: Optional[SurgeryType] = None
    start_date: Optional[date] = None


class EnrollmentResponse(BaseModel):
    id: UUID
    patient_id: str
    surgery_type: str
    start_date: date
    current_day: int

    model_config = ConfigDict(from_attributes=True)


class ProgramSummaryResponse(BaseModel):
    enrollment: EnrollmentResponse
    program_name: str
    total_days: int
    current_day: int
    status: str
    days_remaining: int
    overall_completed: int
    overall_total: int
    overall_percentage: int
    materialized_days: int


class TaskResponse(BaseModel):
    id: UUID
    day_number: int
    template_key: str
    surgery_type: str
    sequence: int
    title: str
    description: Optional[str]
    category: TaskCategory
    estimated_duration_minutes: Optional[int]
    difficulty_level: int
    is_completed: Optional[bool]  # None until the patient first toggles the task
    completed_at: Optional[datetime]
    notes: Optional[str]


class DailyTasksResponse(BaseModel):
    day_number: int
    tasks: List[TaskResponse]


class CompleteTaskRequest(BaseModel):
    is_completed: bool
    notes: Optional[str] = Field(default=None, max_length=2000)


class CompletionResponse(BaseModel):
    task_instance_id: UUID
    is_completed: bool
    notes: Optional[str]
    completed_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class CompletionStatsResponse(BaseModel):
    completed: int
    total: int
    percentage: int


class SymptomReportRequest(BaseModel):
    symptoms: Dict[str, bool] = Field(default_factory=dict)
    severity_level: int = Field(..., ge=1, le=5)


class SymptomReportResponse(BaseModel):
    id: UUID
    symptoms: Dict[str, bool]
    severity_level: int
    requires_emergency: bool
    doctor_notified: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SymptomReportListResponse(BaseModel):
    reports: List[SymptomReportResponse]
    count: int


# ============ Dependencies ============

def get_catalog() -> RecoveryCatalog:
    return load_catalog()


def get_store(db: Session = Depends(get_db)) -> RecoveryStore:
    return RecoveryStore(db)


def get_tracker(
    store: RecoveryStore = Depends(get_store),
    catalog: RecoveryCatalog = Depends(get_catalog),
) -> RecoveryProgramTracker:
    return RecoveryProgramTracker(store, catalog)


# ============ Endpoints ============

@router.get("/programs", response_model=List[ProgramResponse])
async def list_programs(
    patient_id: str = Depends(get_current_patient_id),
    catalog: RecoveryCatalog = Depends(get_catalog),
):
    """List the recovery programs a patient can enroll in."""
    return [
        ProgramResponse(
            surgery_type=p.surgery_type,
            program_name=p.program_name,
            description=p.description,
            total_days=p.total_days,
        )
        for p in catalog.list_programs()
    ]


@router.post("/enrollment", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
async def enroll(
    request: EnrollRequest,
    patient_id: str = Depends(get_current_patient_id),
    tracker: RecoveryProgramTracker = Depends(get_tracker),
):
    """
    Start the patient's recovery journey.

    Fails with 409 if the patient already has one; use PATCH to change it.
    """
    enrollment = tracker.enroll(patient_id, request.surgery_type.value, request.start_date)
    return _enrollment_response(tracker, enrollment)


@router.get("/enrollment", response_model=ProgramSummaryResponse)
async def get_enrollment(
    patient_id: str = Depends(get_current_patient_id),
    tracker: RecoveryProgramTracker = Depends(get_tracker),
):
    """Current day, status and overall progress of the patient's journey."""
    summary = tracker.get_program_summary(patient_id)
    return ProgramSummaryResponse(
        enrollment=_enrollment_response(tracker, summary.enrollment),
        program_name=summary.program_name,
        total_days=summary.total_days,
        current_day=summary.current_day,
        status=summary.status.value,
        days_remaining=summary.days_remaining,
        overall_completed=summary.overall_completed,
        overall_total=summary.overall_total,
        overall_percentage=summary.overall_percentage,
        materialized_days=summary.materialized_days,
    )


@router.patch("/enrollment", response_model=EnrollmentResponse)
async def update_enrollment(
    request: UpdateEnrollmentRequest,
    patient_id: str = Depends(get_current_patient_id),
    tracker: RecoveryProgramTracker = Depends(get_tracker),
):
    """Change surgery type and/or surgery date. Past days keep their tasks."""
    enrollment = tracker.update_enrollment(
        patient_id,
        surgery_type=request.surgery_type.value if request.surgery_type else None,
        start_date=request.start_date,
    )
    return _enrollment_response(tracker, enrollment)


@router.get("/tasks", response_model=DailyTasksResponse)
async def get_daily_tasks(
    day: Optional[int] = Query(default=None, ge=1),
    patient_id: str = Depends(get_current_patient_id),
    tracker: RecoveryProgramTracker = Depends(get_tracker),
):
    """Tasks for a program day (defaults to today's program day)."""
    resolved = tracker.get_day(patient_id, day)
    return DailyTasksResponse(
        day_number=resolved.day_number,
        tasks=[_task_response(t) for t in resolved.tasks],
    )


@router.put("/tasks/{task_id}/completion", response_model=CompletionResponse)
async def complete_task(
    task_id: UUID,
    request: CompleteTaskRequest,
    patient_id: str = Depends(get_current_patient_id),
    tracker: RecoveryProgramTracker = Depends(get_tracker),
):
    """Mark a task complete or incomplete."""
    return tracker.complete_task(patient_id, task_id, request.is_completed, request.notes)


@router.get("/stats/today", response_model=CompletionStatsResponse)
async def get_today_stats(
    patient_id: str = Depends(get_current_patient_id),
    tracker: RecoveryProgramTracker = Depends(get_tracker),
):
    stats = tracker.get_today_completion_stats(patient_id)
    return CompletionStatsResponse(completed=stats.completed, total=stats.total, percentage=stats.percentage)


@router.post("/symptoms", response_model=SymptomReportResponse, status_code=status.HTTP_201_CREATED)
async def submit_symptoms(
    request: SymptomReportRequest,
    patient_id: str = Depends(get_current_patient_id),
    store: RecoveryStore = Depends(get_store),
):
    """
    Record a symptom report.

    The response flags whether the symptoms need emergency attention.
    """
    return symptom_triage.submit_symptom_report(store, patient_id, request.symptoms, request.severity_level)


@router.get("/symptoms", response_model=SymptomReportListResponse)
async def list_symptoms(
    limit: int = Query(default=20, ge=1, le=100),
    patient_id: str = Depends(get_current_patient_id),
    store: RecoveryStore = Depends(get_store),
):
    reports = symptom_triage.list_symptom_reports(store, patient_id, limit=limit)
    return SymptomReportListResponse(
        reports=[SymptomReportResponse.model_validate(r) for r in reports],
        count=len(reports),
    )


# ============ Helper Functions ============

def _enrollment_response(tracker: RecoveryProgramTracker, enrollment) -> EnrollmentResponse:
    return EnrollmentResponse(
        id=enrollment.id,
        patient_id=enrollment.patient_id,
        surgery_type=enrollment.surgery_type,
        start_date=enrollment.start_date,
        current_day=tracker.current_day(enrollment),
    )


def _task_response(task: DailyTask) -> TaskResponse:
    i = task.instance
    c = task.completion
    return TaskResponse(
        id=i.id,
        day_number=i.day_number,
        template_key=i.template_key,
        surgery_type=i.surgery_type,
        sequence=i.sequence,
        title=i.title,
        description=i.description,
        category=TaskCategory(i.category),
        estimated_duration_minutes=i.estimated_duration_minutes,
        difficulty_level=i.difficulty_level,
        is_completed=c.is_completed if c else None,
        completed_at=c.completed_at if c else None,
        notes=c.notes if c else None,
    )
