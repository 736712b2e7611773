#!/usr/bin/env python3
"""Validate local Slot Planner environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from slotplanner.repository.data_repository import ScheduleDataRepository
from slotplanner.services.scheduling_service import SchedulingService

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def _fingerprint(result) -> list[tuple[str, str | None, tuple]]:
    return [
        (activity.code, activity.resource_name, activity.slot_ranges)
        for activity in result.activities
    ]


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="slotplanner-env-")

    # CHECK 1 — Python version >= 3.10
    if sys.version_info >= (3, 10):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.10",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2 — Required packages importable
    package_specs = ["fastapi", "uvicorn", "pydantic", "pandas", "httpx", "pytest"]
    import_errors: list[str] = []
    for module_name in package_specs:
        try:
            importlib.import_module(module_name)
        except ImportError as exc:
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        repository = ScheduleDataRepository()
        service = SchedulingService(repository=repository)

        # CHECK 3 — Template files load
        try:
            events_path, locations_path, prefs_path = repository.write_templates(temp_dir)
            activities = repository.load_activities(events_path)
            resources = repository.load_resources(locations_path)
            repository.load_preferences(prefs_path)
            ok, line = _print_result(
                "Template ingestion",
                True,
                f": {len(activities)} activities, {len(resources)} resources",
            )
        except Exception as exc:
            ok, line = _print_result("Template ingestion", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4 — Seeded runs are reproducible
        try:
            config = service.build_config(seed=20240101)
            first = service.generate_from_files(
                events=events_path,
                locations=locations_path,
                preferences=prefs_path,
                config=config,
            )
            second = service.generate_from_files(
                events=events_path,
                locations=locations_path,
                preferences=prefs_path,
                config=config,
            )
            if _fingerprint(first) != _fingerprint(second) or first.metrics != second.metrics:
                raise RuntimeError("seeded runs diverged")
            ok, line = _print_result(
                "Deterministic generation",
                True,
                f": metrics={first.metrics.as_tuple()}",
            )
        except Exception as exc:
            ok, line = _print_result("Deterministic generation", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Slot Planner Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
