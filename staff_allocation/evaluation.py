# staff_allocation/evaluation.py
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from .config import GAConfig
from .domains import bounded_hours
from .events import EventLog
from .model import Individual, Teacher, TeacherId, TeachingRecord


@dataclass
class EvaluationResult:
    score: float
    negative_count: int
    negative_sum: float
    idle_count: int
    max_allocated: float
    overload_penalty: float
    dropped: int                      # contribuciones descartadas por horas absurdas
    allocated: Dict[TeacherId, float]


def reset_allocations(teachers: Dict[TeacherId, Teacher]) -> None:
    for t in teachers.values():
        t.allocated = 0.0


def accumulate_hours(
    genes: List[TeacherId],
    allocatable: List[TeachingRecord],
    teachers: Dict[TeacherId, Teacher],
    parameters: Dict[str, float],
    cfg: GAConfig,
    log: Optional[EventLog] = None,
) -> int:
    """Suma CH por docente a partir de los genes. Devuelve cuántas se descartaron."""
    dropped = 0
    for tid, rec in zip(genes, allocatable):
        hours = bounded_hours(rec.students, parameters[rec.component_id], cfg.max_hours)
        if hours is None:
            dropped += 1
            if log is not None:
                ch = rec.students / parameters[rec.component_id]
                log.warning(f"CH absurda detectada: {ch} para componente {rec.component_id}",
                            code="absurd_hours")
            continue
        teachers[tid].allocated += hours
    return dropped


def score_roster(teachers: Dict[TeacherId, Teacher], cfg: GAConfig) -> EvaluationResult:
    """Agrega saldos del plantel y calcula el puntaje (<= 0, 0 es óptimo)."""
    if teachers:
        capacity = np.fromiter((t.capacity for t in teachers.values()), dtype=float, count=len(teachers))
        allocated = np.fromiter((t.allocated for t in teachers.values()), dtype=float, count=len(teachers))
    else:
        capacity = allocated = np.zeros(0)
    balance = capacity - allocated
    negative = balance < 0

    negative_count = int(negative.sum())
    negative_sum = float(np.abs(balance[negative]).sum())
    idle_count = int((allocated == 0).sum())
    max_allocated = float(allocated.max()) if allocated.size else 0.0
    overload = 0.0
    if max_allocated > cfg.overload_threshold:
        overload = (max_allocated - cfg.overload_threshold) * cfg.weight_overload

    penalty = (
        negative_count * cfg.weight_negative_count
        + negative_sum * cfg.weight_negative_sum
        + idle_count * cfg.weight_idle
        + overload
    )
    return EvaluationResult(
        score=-penalty if penalty else 0.0,
        negative_count=negative_count,
        negative_sum=negative_sum,
        idle_count=idle_count,
        max_allocated=max_allocated,
        overload_penalty=overload,
        dropped=0,
        allocated={tid: t.allocated for tid, t in teachers.items()},
    )


def evaluate(
    ind: Individual,
    allocatable: List[TeachingRecord],
    teachers: Dict[TeacherId, Teacher],
    parameters: Dict[str, float],
    cfg: GAConfig,
    log: Optional[EventLog] = None,
) -> EvaluationResult:
    """
    Recalcula la CH de todo el plantel para un individuo y le asigna fitness.

    El plantel se pone a cero antes de acumular: nunca se mantiene de forma
    incremental entre evaluaciones, por lo que deben ejecutarse en secuencia.
    """
    reset_allocations(teachers)
    dropped = accumulate_hours(ind.genes, allocatable, teachers, parameters, cfg, log)
    res = score_roster(teachers, cfg)
    res.dropped = dropped
    ind.fitness = res.score
    return res
