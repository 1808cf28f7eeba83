import math
from typing import Dict, List, Sequence, Tuple

import numpy as np

from .initial_population import pick_teacher
from .model import Individual, Teacher, TeacherId, TeachingRecord


def elite_count(pop_size: int, fraction: float = 0.1) -> int:
    """max(1, ceil(fraction·P)), sin pasar del tamaño de la población."""
    if pop_size <= 0:
        return 0
    return min(pop_size, max(1, math.ceil(fraction * pop_size)))


def tournament_select(
    population: Sequence[Individual],
    fitnesses: Sequence[float],
    rng: np.random.Generator,
    size: int = 3,
) -> Individual:
    """Sortea `size` índices con reemplazo y devuelve el de mayor fitness."""
    draws = rng.integers(0, len(population), size=size)
    best = int(draws[0])
    for idx in draws[1:]:
        if fitnesses[int(idx)] > fitnesses[best]:
            best = int(idx)
    return population[best]


def single_point_crossover(
    p1: Individual,
    p2: Individual,
    rng: np.random.Generator,
) -> Tuple[Individual, Individual]:
    """
    Cruce de un punto: el hijo 1 toma los genes de p1 antes del corte y los de
    p2 después; el hijo 2 es el espejo. Con menos de dos genes no hay corte
    posible y los hijos son copias.
    """
    n = len(p1.genes)
    if n < 2:
        return p1.copy(), p2.copy()
    cut = int(rng.integers(1, n))
    c1 = Individual(genes=p1.genes[:cut] + p2.genes[cut:])
    c2 = Individual(genes=p2.genes[:cut] + p1.genes[cut:])
    return c1, c2


def mutate(
    ind: Individual,
    allocatable: List[TeachingRecord],
    teachers: Dict[TeacherId, Teacher],
    rate: float,
    rng: np.random.Generator,
) -> int:
    """Reemplaza cada gen, con probabilidad `rate`, por la elección heurística."""
    changed = 0
    for i, rec in enumerate(allocatable):
        if rng.random() < rate:
            new = pick_teacher(rec.eligible_teachers, teachers)
            if new != ind.genes[i]:
                changed += 1
            ind.genes[i] = new
    return changed
