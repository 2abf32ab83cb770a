"""
Recovery Program Catalog

Read-only source of task templates per surgery type.
Programs are stored in external JSON (data/recovery_catalog.json) so care
teams can edit them without code changes, and validated as a unit on load.

Each catalog task declares the inclusive range of program days it applies
to; a TaskTemplate is one task expanded onto one day.
"""

from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple
from pydantic import BaseModel, Field, field_validator, model_validator
import json
import logging

from core.config import settings

logger = logging.getLogger(__name__)


class SurgeryType(str, Enum):
    HEART = "heart"
    KNEE = "knee"
    CESAREAN = "cesarean"
    OTHER = "other"


class TaskCategory(str, Enum):
    EXERCISE = "exercise"
    BREATHING = "breathing"
    THERAPY = "therapy"
    CARE = "care"
    MEDICATION = "medication"
    GENERAL = "general"


# =============================================================================
# SCHEMA
# =============================================================================

class CatalogTask(BaseModel):
    """A task as authored in the catalog, valid over a range of days."""

    id: str = Field(..., pattern=r"^[a-z][a-z0-9_]*$")
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: TaskCategory
    estimated_duration_minutes: Optional[int] = Field(default=None, ge=1)
    difficulty_level: int = Field(..., ge=1, le=5)
    sequence: int = Field(..., ge=1, description="Order within a day")
    days: Tuple[int, int] = Field(..., description="[first_day, last_day], inclusive")

    @field_validator("days")
    @classmethod
    def validate_day_range(cls, v):
        first, last = v
        if first < 1 or last < first:
            raise ValueError("days must be [first, last] with 1 <= first <= last")
        return v

    def applies_to(self, day_number: int) -> bool:
        return self.days[0] <= day_number <= self.days[1]


class TaskTemplate(BaseModel):
    """One catalog task on one program day."""

    key: str
    surgery_type: SurgeryType
    day_number: int
    sequence: int
    title: str
    description: Optional[str] = None
    category: TaskCategory
    estimated_duration_minutes: Optional[int] = None
    difficulty_level: int


class RecoveryProgram(BaseModel):
    surgery_type: SurgeryType
    program_name: str
    description: Optional[str] = None
    total_days: int = Field(..., ge=1)
    tasks: List[CatalogTask] = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_tasks(self):
        ids = [t.id for t in self.tasks]
        if len(ids) != len(set(ids)):
            duplicates = {i for i in ids if ids.count(i) > 1}
            raise ValueError(f"Duplicate task ids in {self.surgery_type.value}: {duplicates}")
        beyond = [t.id for t in self.tasks if t.days[1] > self.total_days]
        if beyond:
            raise ValueError(f"Tasks extend past day {self.total_days}: {beyond}")
        return self


class RecoveryCatalog(BaseModel):
    """Complete catalog loaded from JSON."""

    version: str
    programs: List[RecoveryProgram] = Field(..., min_length=1)

    @field_validator("programs")
    @classmethod
    def validate_unique_surgery_types(cls, v):
        types = [p.surgery_type for p in v]
        if len(types) != len(set(types)):
            raise ValueError("Each surgery type may only have one program")
        return v

    def get_program(self, surgery_type: SurgeryType) -> Optional[RecoveryProgram]:
        for program in self.programs:
            if program.surgery_type == surgery_type:
                return program
        return None

    def check_program_length(self, expected_days: int) -> None:
        """Raise ValueError if any program is not `expected_days` long."""
        mismatched = {
            p.surgery_type.value: p.total_days
            for p in self.programs
            if p.total_days != expected_days
        }
        if mismatched:
            raise ValueError(
                f"Recovery programs must run {expected_days} days (RECOVERY_PROGRAM_DAYS); "
                f"catalog has {mismatched}"
            )

    def list_programs(self) -> List[RecoveryProgram]:
        return sorted(self.programs, key=lambda p: p.surgery_type.value)

    def fetch_templates(self, surgery_type: SurgeryType, day_number: int) -> List[TaskTemplate]:
        """Templates for one surgery type on one day, in day-local order."""
        program = self.get_program(SurgeryType(surgery_type))
        if program is None:
            return []

        tasks = sorted(
            (t for t in program.tasks if t.applies_to(day_number)),
            key=lambda t: (t.sequence, t.id),
        )
        return [
            TaskTemplate(
                key=t.id,
                surgery_type=program.surgery_type,
                day_number=day_number,
                sequence=t.sequence,
                title=t.title,
                description=t.description,
                category=t.category,
                estimated_duration_minutes=t.estimated_duration_minutes,
                difficulty_level=t.difficulty_level,
            )
            for t in tasks
        ]


# =============================================================================
# LOADER
# =============================================================================

_cached_catalog: Optional[RecoveryCatalog] = None


def default_catalog_path() -> Path:
    if settings.RECOVERY_CATALOG_PATH:
        return Path(settings.RECOVERY_CATALOG_PATH)
    return Path(__file__).parent.parent / "data" / "recovery_catalog.json"


def load_catalog(path: Optional[Path] = None, force_reload: bool = False) -> RecoveryCatalog:
    """
    Load and validate the recovery catalog.

    The default catalog is cached after the first load. An explicit path
    always loads fresh and is not cached.

    Raises:
        FileNotFoundError: If the catalog file doesn't exist
        pydantic.ValidationError: If the catalog fails schema validation
    """
    global _cached_catalog

    if path is None and _cached_catalog is not None and not force_reload:
        return _cached_catalog

    catalog_path = path or default_catalog_path()
    if not catalog_path.exists():
        raise FileNotFoundError(f"Recovery catalog not found: {catalog_path}")

    logger.info(f"Loading recovery catalog from {catalog_path}")

    with open(catalog_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    catalog = RecoveryCatalog(**data)

    logger.info(
        f"Loaded {len(catalog.programs)} recovery programs, version {catalog.version}"
    )

    if path is None:
        _cached_catalog = catalog
    return catalog
