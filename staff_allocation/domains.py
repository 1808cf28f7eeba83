# staff_allocation/domains.py
"""
Reglas de dominio compartidas por la clasificación, la evaluación y el reporte:
validación de parámetros, cálculo acotado de horas y el índice de
compatibilidad componente → docentes.
"""
import math
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, Any

from .events import EventLog
from .model import Component, ComponentId, EligibilityRelation, TeacherId

# Decimal simple con exponente opcional; sin '_', sin 'inf'/'nan', sin hexadecimales
NUMERIC_PATTERN = r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?"
_NUMERIC = re.compile(NUMERIC_PATTERN)


def validate_parameter(
    component_id: ComponentId,
    raw: Any,
    log: Optional[EventLog] = None,
    min_value: float = 0.01,
) -> Optional[float]:
    """
    Devuelve el parámetro como float si es válido, o None.

    Válido = presente, numérico, > 0 y >= `min_value`. Los valores que
    parsean pero quedan por debajo del mínimo se registran en el log.
    """
    if raw is None:
        return None
    text = str(raw).strip()
    if not _NUMERIC.fullmatch(text):
        return None
    value = float(text)
    if not math.isfinite(value) or value <= 0:
        return None
    if value < min_value:
        if log is not None:
            log.warning(
                f"Componente {component_id} con parámetro muy bajo ({value}) - marcado como crítico",
                code="low_parameter",
            )
        return None
    return value


def bounded_hours(students: int, parameter: float, max_hours: float = 10000.0) -> Optional[float]:
    """Horas = alumnos / parámetro, o None si quedan fuera de (0, max_hours)."""
    hours = students / parameter
    if 0 < hours < max_hours:
        return hours
    return None


class CompatibilityIndex:
    """Responde qué docentes pueden dictar un componente para un curso."""

    def __init__(self, relations: Iterable[EligibilityRelation]):
        self._by_component: Dict[ComponentId, List[EligibilityRelation]] = {}
        for rel in relations:
            self._by_component.setdefault(rel.component_id, []).append(rel)

    def eligible_teachers(self, component_id: ComponentId, course: str) -> Tuple[TeacherId, ...]:
        seen: Dict[TeacherId, None] = {}
        for rel in self._by_component.get(component_id, []):
            if rel.allows(course) and rel.teacher_id not in seen:
                seen[rel.teacher_id] = None
        return tuple(seen)

    def components_for_teacher(self, teacher_id: TeacherId) -> List[ComponentId]:
        out: List[ComponentId] = []
        for component_id, rels in self._by_component.items():
            if any(r.teacher_id == teacher_id for r in rels) and component_id not in out:
                out.append(component_id)
        return out


@dataclass(frozen=True)
class TeacherAudit:
    teacher_id: TeacherId
    components: List[ComponentId]
    without_parameter: List[ComponentId]


def audit_teacher(
    teacher_id: TeacherId,
    index: CompatibilityIndex,
    components: Dict[ComponentId, Component],
    log: Optional[EventLog] = None,
) -> TeacherAudit:
    """
    Lista los componentes que un docente puede dictar y cuáles de ellos no
    tienen parámetro válido (siempre críticos, nunca asignados).
    """
    teachable = index.components_for_teacher(teacher_id)
    missing = [
        c for c in teachable
        if c not in components or not components[c].has_parameter
    ]
    if log is not None:
        log.info(f"Verificación docente {teacher_id}: {len(teachable)} componentes, "
                 f"{len(missing)} sin parámetro")
        if missing:
            log.info(f"   Componentes sin parámetro (siempre críticos): {', '.join(missing[:10])}")
    return TeacherAudit(teacher_id=teacher_id, components=teachable, without_parameter=missing)

