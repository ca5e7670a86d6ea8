from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

from shortgate.model import Diagnostic, RunError
from shortgate.runner import RunReport


class DiagnosticDTO(BaseModel):
    path: str
    line: int
    column: int
    rule: str
    category: str
    message: str

    @classmethod
    def from_diagnostic(cls, diagnostic: Diagnostic) -> DiagnosticDTO:
        return cls(
            path=diagnostic.position.path,
            line=diagnostic.position.line,
            column=diagnostic.position.column,
            rule=diagnostic.rule,
            category=diagnostic.category.value,
            message=diagnostic.message,
        )


class RunErrorDTO(BaseModel):
    message: str
    path: Optional[str] = None

    @classmethod
    def from_error(cls, error: RunError) -> RunErrorDTO:
        return cls(message=error.message, path=None if error.path is None else str(error.path))


class CheckReportDTO(BaseModel):
    exit_code: int
    diagnostics: List[DiagnosticDTO] = []
    errors: List[RunErrorDTO] = []

    @classmethod
    def from_report(cls, report: RunReport) -> CheckReportDTO:
        return cls(
            exit_code=report.exit_code,
            diagnostics=[DiagnosticDTO.from_diagnostic(item) for item in report.diagnostics],
            errors=[RunErrorDTO.from_error(item) for item in report.errors],
        )


class FixResultDTO(BaseModel):
    path: str
    functions: List[str]
    changed: bool
