# staff_allocation/report.py
"""
Materializa la solución ganadora: aplica la asignación a los registros,
recalcula la CH final de cada docente, arma las filas del reporte y
vuelve a verificar la conservación de alumnos.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from .config import GAConfig
from .domains import bounded_hours
from .evaluation import reset_allocations
from .events import EventLog
from .model import RecordStatus, Teacher, TeacherId, TeachingRecord

REPORT_COLUMNS = [
    "YEAR", "TERM", "TEACHER", "COMPONENT", "STUDENTS",
    "HOURS", "STATUS", "CAPACITY", "FINAL_HOURS", "BALANCE",
]

GRADE_EXCELLENT = "EXCELLENT"
GRADE_ACCEPTABLE = "ACCEPTABLE"
GRADE_CRITICAL = "CRITICAL"


@dataclass
class ReportSummary:
    original_students: int
    report_students: int
    negative_teachers: int
    negative_sum: float
    worst_balance: float
    worst_teacher: str
    max_allocated: float
    max_teacher: str
    idle_teachers: int
    absurd_totals: int          # docentes con CH final por encima del umbral absurdo
    absurd_hours: int           # registros cuya CH se anuló al generar el reporte
    grade: str

    @property
    def conservation_ok(self) -> bool:
        return self.original_students == self.report_students


@dataclass
class Report:
    rows: pd.DataFrame
    summary: ReportSummary


def _fmt(value: float) -> str:
    return f"{value:.6f}"


def apply_assignment(
    records: List[TeachingRecord],
    teachers: Dict[TeacherId, Teacher],
    assignment: Dict[int, TeacherId],
    parameters: Dict[str, float],
    cfg: GAConfig,
    log: EventLog,
) -> int:
    """Pasa los registros asignables a ALLOCATED y acumula su CH. Devuelve las CH anuladas."""
    reset_allocations(teachers)
    absurd = 0
    for rec in records:
        tid = assignment.get(rec.index)
        if tid is None or rec.status is not RecordStatus.ALLOCATABLE:
            continue
        rec.teacher_id = tid
        rec.status = RecordStatus.ALLOCATED
        hours = bounded_hours(rec.students, parameters[rec.component_id], cfg.max_hours)
        if hours is None:
            absurd += 1
            log.error(f"CH absurda evitada: {rec.students / parameters[rec.component_id]} "
                      f"para componente {rec.component_id}", code="absurd_hours_report")
            rec.hours = 0.0
            continue
        rec.hours = hours
        teachers[tid].allocated += hours
    return absurd


def build_rows(records: List[TeachingRecord], teachers: Dict[TeacherId, Teacher]) -> pd.DataFrame:
    rows: List[Dict] = []
    for rec in records:
        rows.append({
            "YEAR": rec.year,
            "TERM": rec.term,
            "TEACHER": rec.teacher_id or "",
            "COMPONENT": rec.component_id,
            "STUDENTS": rec.students,
            "HOURS": _fmt(rec.hours),
            "STATUS": rec.status.value if rec.status else "",
        })
    for tid, t in teachers.items():
        if t.allocated == 0:
            rows.append({
                "YEAR": "", "TERM": "", "TEACHER": tid, "COMPONENT": "",
                "STUDENTS": 0, "HOURS": "0", "STATUS": RecordStatus.IDLE.value,
            })

    rows.sort(key=lambda r: (r["YEAR"], r["TERM"], r["TEACHER"], r["COMPONENT"]))

    for row in rows:
        t: Optional[Teacher] = teachers.get(row["TEACHER"]) if row["TEACHER"] else None
        if t is not None:
            row["CAPACITY"] = _fmt(t.capacity)
            row["FINAL_HOURS"] = _fmt(t.allocated)
            row["BALANCE"] = _fmt(t.balance)
        else:
            row["CAPACITY"] = row["FINAL_HOURS"] = row["BALANCE"] = ""

    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def summarize(
    records: List[TeachingRecord],
    teachers: Dict[TeacherId, Teacher],
    rows: pd.DataFrame,
    absurd_hours: int,
    cfg: GAConfig,
    log: EventLog,
) -> ReportSummary:
    negative = idle = absurd_totals = 0
    negative_sum = worst = max_alloc = 0.0
    worst_tid = max_tid = ""
    for tid, t in teachers.items():
        if t.allocated > cfg.absurd_total_hours:
            absurd_totals += 1
            log.error(f"CH ABSURDA: docente {tid} con {t.allocated}h", code="absurd_total")
        if t.allocated > max_alloc:
            max_alloc, max_tid = t.allocated, tid
        if t.balance < 0:
            negative += 1
            negative_sum += abs(t.balance)
            if t.balance < worst:
                worst, worst_tid = t.balance, tid
        if t.allocated == 0:
            idle += 1

    if max_alloc < cfg.overload_threshold:
        grade = GRADE_EXCELLENT
    elif max_alloc < cfg.absurd_total_hours:
        grade = GRADE_ACCEPTABLE
    else:
        grade = GRADE_CRITICAL

    return ReportSummary(
        original_students=sum(r.students for r in records),
        report_students=int(pd.to_numeric(rows["STUDENTS"]).sum()) if len(rows) else 0,
        negative_teachers=negative,
        negative_sum=negative_sum,
        worst_balance=worst,
        worst_teacher=worst_tid,
        max_allocated=max_alloc,
        max_teacher=max_tid,
        idle_teachers=idle,
        absurd_totals=absurd_totals,
        absurd_hours=absurd_hours,
        grade=grade,
    )


def log_summary(summary: ReportSummary, log: EventLog) -> None:
    log.info(f"Total original: {summary.original_students} alumnos")
    log.info(f"Total reporte: {summary.report_students} alumnos")
    if not summary.conservation_ok:
        log.error("ERROR CRÍTICO: conservación violada en el reporte", code="report_conservation")
        log.error(f"   Diferencia: {summary.original_students - summary.report_students}")
    else:
        log.info("Conservación del reporte verificada")

    log.info("ESTADÍSTICAS FINALES:")
    log.info(f"   - Docentes con saldo negativo: {summary.negative_teachers}")
    log.info(f"   - Suma de saldos negativos: {summary.negative_sum:.2f}h")
    log.info(f"   - Peor saldo: {summary.worst_balance:.2f}h (docente {summary.worst_teacher})")
    log.info(f"   - Mayor CH: {summary.max_allocated:.2f}h (docente {summary.max_teacher})")
    log.info(f"   - Docentes sin alumnos: {summary.idle_teachers}")
    log.info(f"   - CH absurdas por docente: {summary.absurd_totals}")
    log.info(f"   - CH anuladas en registros: {summary.absurd_hours}")
    if summary.grade == GRADE_EXCELLENT:
        log.info("Todas las CH en niveles realistas")
    elif summary.grade == GRADE_ACCEPTABLE:
        log.warning("CH máxima alta pero aceptable")
    else:
        log.error("CH máxima muy alta")


def build_report(
    records: List[TeachingRecord],
    teachers: Dict[TeacherId, Teacher],
    assignment: Dict[int, TeacherId],
    parameters: Dict[str, float],
    cfg: GAConfig,
    log: EventLog,
) -> Report:
    log.info("Generando reporte...")
    absurd = apply_assignment(records, teachers, assignment, parameters, cfg, log)
    rows = build_rows(records, teachers)
    summary = summarize(records, teachers, rows, absurd, cfg, log)
    log_summary(summary, log)
    return Report(rows=rows, summary=summary)


def write_report(report: Report, path: str, log: Optional[EventLog] = None) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    report.rows.to_csv(out, sep=";", quotechar='"', index=False)
    if log is not None:
        log.info(f"Reporte generado: {out} ({len(report.rows)} filas)")
    return out


def write_history(history: List[Dict], path: str) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(history, columns=["gen", "best_score", "mean_score", "stagnation"]).to_csv(out, index=False)
    return out
