"""Build reporting helpers for folio."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, Field

from .output import OutputError, SectionResult, ensure_directory

REPORT_FILENAME = "build-report.json"


class SectionStats(BaseModel):
    section: str
    written: int
    skipped: int
    failed: int
    pages: int
    assets_copied: int
    failures: list[str] = Field(default_factory=list)


class BuildReport(BaseModel):
    project: str
    mode: str
    generated_at: datetime
    duration_seconds: float
    sections: list[SectionStats] = Field(default_factory=list)
    static_files: int = 0
    warnings: list[str] = Field(default_factory=list)

    @property
    def total_failures(self) -> int:
        return sum(section.failed for section in self.sections)


def build_section_stats(result: SectionResult) -> SectionStats:
    return SectionStats(
        section=result.section,
        written=result.entries,
        skipped=result.skipped,
        failed=len(result.failures),
        pages=len(result.pages),
        assets_copied=len(result.assets),
        failures=[f"{path}: {message}" for path, message in result.failures],
    )


def assemble_report(
    *,
    project: str,
    mode: str,
    duration_seconds: float,
    sections: Iterable[SectionResult],
    static_files: int = 0,
) -> BuildReport:
    stats = [build_section_stats(result) for result in sections]
    warnings: list[str] = []
    for section in stats:
        for failure in section.failures:
            warnings.append(f"[{section.section}] {failure}")

    return BuildReport(
        project=project,
        mode=mode,
        generated_at=datetime.now(timezone.utc),
        duration_seconds=duration_seconds,
        sections=stats,
        static_files=static_files,
        warnings=warnings,
    )


def write_report(report: BuildReport, output_dir: Path) -> Path:
    ensure_directory(output_dir)
    target = output_dir / REPORT_FILENAME
    try:
        with target.open("w", encoding="utf-8") as handle:
            json.dump(report.model_dump(mode="json"), handle, ensure_ascii=False, indent=2)
    except OSError as exc:
        raise OutputError(target, f"Cannot write build report ({exc.strerror or exc})") from exc
    return target
