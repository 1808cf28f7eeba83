# staff_allocation/classifier.py
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .domains import CompatibilityIndex
from .events import EventLog
from .model import Component, ComponentId, RecordStatus, TeachingRecord

CLASSIFIED_STATUSES = (
    RecordStatus.CRITICAL_NO_PARAMETER,
    RecordStatus.CRITICAL_NO_TEACHER,
    RecordStatus.ALLOCATABLE,
)


class ConservationError(Exception):
    """La suma de alumnos clasificados no coincide con la entrada."""

    def __init__(self, expected: int, obtained: int):
        super().__init__(f"Conservación violada: esperado {expected}, obtenido {obtained}")
        self.expected = expected
        self.obtained = obtained


@dataclass
class ClassificationResult:
    records: List[TeachingRecord]
    allocatable: List[TeachingRecord]            # registros asignables, en orden de entrada
    total_students: int = 0
    students_by_status: Counter = field(default_factory=Counter)
    groups_by_status: Counter = field(default_factory=Counter)

    @property
    def classified_students(self) -> int:
        return sum(self.students_by_status[s] for s in CLASSIFIED_STATUSES)

    @property
    def critical_students(self) -> int:
        return (self.students_by_status[RecordStatus.CRITICAL_NO_PARAMETER]
                + self.students_by_status[RecordStatus.CRITICAL_NO_TEACHER])


def classify_record(
    rec: TeachingRecord,
    components: Dict[ComponentId, Component],
    index: CompatibilityIndex,
) -> RecordStatus:
    """
    1) sin parámetro válido -> crítico sin parámetro (nunca asignable)
    2) sin docentes compatibles -> crítico sin docentes
    3) en otro caso -> asignable, guardando la lista de docentes
    """
    comp: Optional[Component] = components.get(rec.component_id)
    if comp is None or not comp.has_parameter:
        rec.status = RecordStatus.CRITICAL_NO_PARAMETER
        return rec.status

    eligible = index.eligible_teachers(rec.component_id, rec.course_id)
    if not eligible:
        rec.status = RecordStatus.CRITICAL_NO_TEACHER
    else:
        rec.status = RecordStatus.ALLOCATABLE
        rec.eligible_teachers = eligible
    return rec.status


def check_conservation(result: ClassificationResult, log: EventLog) -> None:
    obtained = result.classified_students
    if obtained != result.total_students:
        log.error("ERROR CRÍTICO: conservación violada en la clasificación", code="conservation")
        log.error(f"   Esperado: {result.total_students}")
        log.error(f"   Obtenido: {obtained}")
        raise ConservationError(result.total_students, obtained)
    log.info(f"Conservación validada: {result.total_students} alumnos")


def classify(
    records: List[TeachingRecord],
    components: Dict[ComponentId, Component],
    index: CompatibilityIndex,
    log: EventLog,
) -> ClassificationResult:
    """Etiqueta cada registro y verifica la conservación de alumnos.

    Raises:
        ConservationError: si la suma por estado difiere del total de entrada.
    """
    result = ClassificationResult(records=records, allocatable=[])
    for rec in records:
        result.total_students += rec.students
        status = classify_record(rec, components, index)
        result.students_by_status[status] += rec.students
        result.groups_by_status[status] += 1
        if status is RecordStatus.ALLOCATABLE:
            result.allocatable.append(rec)

    by = result.students_by_status
    log.info("CLASIFICACIÓN:")
    log.info(f"   Total de alumnos: {result.total_students}")
    log.info(f"   Asignables: {by[RecordStatus.ALLOCATABLE]} ({len(result.allocatable)} grupos)")
    log.info(f"   Críticos sin parámetro: {by[RecordStatus.CRITICAL_NO_PARAMETER]}")
    log.info(f"   Críticos sin docentes: {by[RecordStatus.CRITICAL_NO_TEACHER]}")
    log.info(f"   Total críticos: {result.critical_students}")

    check_conservation(result, log)
    return result
