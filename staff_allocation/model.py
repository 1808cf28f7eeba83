# staff_allocation/model.py
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

TeacherId = str
ComponentId = str

ANY_COURSE = "ANY"


class RecordStatus(str, Enum):
    CRITICAL_NO_PARAMETER = "CRITICAL_NO_PARAMETER"
    CRITICAL_NO_TEACHER = "CRITICAL_NO_TEACHER"
    ALLOCATABLE = "ALLOCATABLE"
    ALLOCATED = "ALLOCATED"
    IDLE = "IDLE"           # solo en filas sintéticas del reporte


@dataclass
class Teacher:
    teacher_id: TeacherId
    capacity: float           # CH declarada, fija en la corrida
    allocated: float = 0.0    # se recalcula desde cero en cada evaluación

    @property
    def balance(self) -> float:
        return self.capacity - self.allocated


@dataclass(frozen=True)
class Component:
    component_id: ComponentId
    parameter: Optional[float]   # None = inválido/ausente, permanente

    @property
    def has_parameter(self) -> bool:
        return self.parameter is not None


@dataclass
class EligibilityRelation:
    component_id: ComponentId
    teacher_id: TeacherId
    courses: List[str] = field(default_factory=list)   # puede contener ANY_COURSE

    def add_course(self, course: str) -> bool:
        """Agrega un curso (o ANY si viene vacío). Devuelve False si ya estaba."""
        course = course or ANY_COURSE
        if course in self.courses:
            return False
        self.courses.append(course)
        return True

    def allows(self, course: str) -> bool:
        return ANY_COURSE in self.courses or course in self.courses


@dataclass
class TeachingRecord:
    index: int
    year: str
    term: str
    component_id: ComponentId
    course_id: str
    students: int
    status: Optional[RecordStatus] = None
    teacher_id: Optional[TeacherId] = None
    hours: float = 0.0
    eligible_teachers: Tuple[TeacherId, ...] = ()


@dataclass
class Individual:
    # genes[i] = docente asignado al i-ésimo registro asignable
    genes: List[TeacherId]
    fitness: float = 0.0

    def copy(self) -> "Individual":
        return Individual(genes=list(self.genes), fitness=self.fitness)
