"""
Tests for the recovery program catalog: schema validation and template lookup.
"""
import json
import pytest
from pydantic import ValidationError

from core.config import settings

from services.recovery_catalog import (
    CatalogTask,
    RecoveryCatalog,
    RecoveryProgram,
    SurgeryType,
    TaskCategory,
    load_catalog,
)


def _task(task_id="walk", sequence=1, days=(1, 30), **overrides):
    data = {
        "id": task_id,
        "title": "Walk",
        "category": "exercise",
        "difficulty_level": 2,
        "sequence": sequence,
        "days": list(days),
    }
    data.update(overrides)
    return data


def _program(surgery_type="knee", tasks=None, total_days=30):
    return {
        "surgery_type": surgery_type,
        "program_name": f"{surgery_type} recovery",
        "total_days": total_days,
        "tasks": tasks if tasks is not None else [_task()],
    }


class TestBundledCatalog:
    def test_every_surgery_type_has_a_program(self, catalog):
        for surgery in SurgeryType:
            program = catalog.get_program(surgery)
            assert program is not None
            assert program.total_days == 30

    def test_every_day_has_tasks(self, catalog):
        for surgery in SurgeryType:
            for day in range(1, 31):
                assert catalog.fetch_templates(surgery, day), f"{surgery.value} day {day} is empty"

    def test_knee_day_one(self, catalog):
        templates = catalog.fetch_templates(SurgeryType.KNEE, 1)
        assert [t.key for t in templates] == [
            "knee_ankle_pumps",
            "knee_quad_sets",
            "knee_deep_breathing",
            "knee_ice_elevation",
            "knee_pain_medication",
        ]
        assert all(t.day_number == 1 for t in templates)
        assert all(t.surgery_type == SurgeryType.KNEE for t in templates)

    def test_templates_change_over_the_program(self, catalog):
        day1 = {t.key for t in catalog.fetch_templates(SurgeryType.KNEE, 1)}
        day30 = {t.key for t in catalog.fetch_templates(SurgeryType.KNEE, 30)}
        assert "knee_ankle_pumps" in day1
        assert "knee_ankle_pumps" not in day30
        assert "knee_balance_training" in day30

    def test_day_outside_program_is_empty(self, catalog):
        assert catalog.fetch_templates(SurgeryType.HEART, 31) == []

    def test_list_programs_sorted(self, catalog):
        assert [p.surgery_type.value for p in catalog.list_programs()] == [
            "cesarean", "heart", "knee", "other"
        ]

    def test_default_catalog_is_cached(self):
        assert load_catalog() is load_catalog()

    def test_matches_configured_program_length(self, catalog):
        catalog.check_program_length(settings.RECOVERY_PROGRAM_DAYS)


class TestCatalogValidation:
    def test_templates_ordered_by_sequence_then_id(self):
        program = RecoveryProgram(**_program(tasks=[
            _task("zeta", sequence=2),
            _task("beta", sequence=1),
            _task("alpha", sequence=2),
        ]))
        catalog = RecoveryCatalog(version="t", programs=[program])
        keys = [t.key for t in catalog.fetch_templates(SurgeryType.KNEE, 1)]
        assert keys == ["beta", "alpha", "zeta"]

    def test_duplicate_task_ids_rejected(self):
        with pytest.raises(ValidationError, match="Duplicate task ids"):
            RecoveryProgram(**_program(tasks=[_task("walk"), _task("walk", sequence=2)]))

    def test_task_past_program_end_rejected(self):
        with pytest.raises(ValidationError, match="extend past day"):
            RecoveryProgram(**_program(total_days=14, tasks=[_task(days=(1, 30))]))

    def test_inverted_day_range_rejected(self):
        with pytest.raises(ValidationError):
            CatalogTask(**_task(days=(10, 2)))

    def test_difficulty_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            CatalogTask(**_task(difficulty_level=6))

    def test_unknown_category_rejected(self):
        with pytest.raises(ValidationError):
            CatalogTask(**_task(category="yoga"))

    def test_duplicate_surgery_type_rejected(self):
        with pytest.raises(ValidationError, match="one program"):
            RecoveryCatalog(version="t", programs=[_program("knee"), _program("knee")])

    def test_program_length_mismatch_rejected(self):
        catalog = RecoveryCatalog(version="t", programs=[
            _program("knee"),
            _program("heart", total_days=14, tasks=[_task(days=(1, 14))]),
        ])

        with pytest.raises(ValueError, match="heart"):
            catalog.check_program_length(30)
        with pytest.raises(ValueError, match="knee"):
            catalog.check_program_length(14)

    def test_applies_to_is_inclusive(self):
        task = CatalogTask(**_task(days=(3, 5)))
        assert not task.applies_to(2)
        assert task.applies_to(3)
        assert task.applies_to(5)
        assert not task.applies_to(6)


class TestLoadCatalog:
    def test_explicit_path(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"version": "2.0", "programs": [_program("heart")]}))

        catalog = load_catalog(path)

        assert catalog.version == "2.0"
        template = catalog.fetch_templates(SurgeryType.HEART, 1)[0]
        assert template.category == TaskCategory.EXERCISE

    def test_explicit_path_is_not_cached(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"version": "2.0", "programs": [_program("heart")]}))

        load_catalog(path)

        assert load_catalog().version == "1.0"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_catalog(tmp_path / "missing.json")

    def test_invalid_file(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"version": "2.0", "programs": []}))
        with pytest.raises(ValidationError):
            load_catalog(path)
