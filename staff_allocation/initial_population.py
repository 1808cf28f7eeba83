# staff_allocation/initial_population.py
from typing import Dict, List, Sequence

from .model import Individual, Teacher, TeacherId, TeachingRecord


def pick_teacher(eligible: Sequence[TeacherId], teachers: Dict[TeacherId, Teacher]) -> TeacherId:
    """
    Elige el docente con mayor CH declarada entre los compatibles.

    Empates: gana el primero en el orden de descubrimiento. Es una función
    pura del conjunto elegible (no mira la CH restante).
    """
    if not eligible:
        raise ValueError("pick_teacher requiere al menos un docente compatible")
    best = eligible[0]
    best_cap = teachers[best].capacity if best in teachers else 0.0
    for tid in eligible[1:]:
        t = teachers.get(tid)
        if t is not None and t.capacity > best_cap:
            best, best_cap = tid, t.capacity
    return best


def build_individual(
    allocatable: List[TeachingRecord],
    teachers: Dict[TeacherId, Teacher],
) -> Individual:
    # Un gen por registro asignable, en el mismo orden
    return Individual(genes=[pick_teacher(rec.eligible_teachers, teachers) for rec in allocatable])


def build_initial_population(
    allocatable: List[TeachingRecord],
    teachers: Dict[TeacherId, Teacher],
    pop_size: int,
) -> List[Individual]:
    """Todos los individuos salen idénticos: la heurística es determinista."""
    return [build_individual(allocatable, teachers) for _ in range(max(0, pop_size))]
