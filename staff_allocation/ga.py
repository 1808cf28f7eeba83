import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from .config import GAConfig
from .evaluation import evaluate
from .events import EventLog
from .initial_population import build_initial_population
from .model import Individual, Teacher, TeacherId, TeachingRecord
from .operators import elite_count, mutate, single_point_crossover, tournament_select


@dataclass
class SearchResult:
    best: Optional[Individual] = None
    best_score: Optional[float] = None
    assignment: Dict[int, TeacherId] = field(default_factory=dict)   # índice de registro -> docente
    generations_ran: int = 0
    evaluations: int = 0
    stopped_early: bool = False
    history: List[Dict] = field(default_factory=list)
    best_trace: List[float] = field(default_factory=list)            # mejor puntaje tras cada evaluación


class GeneticSolver:
    def __init__(
        self,
        allocatable: List[TeachingRecord],
        teachers: Dict[TeacherId, Teacher],
        parameters: Dict[str, float],
        cfg: GAConfig,
        rng: Optional[np.random.Generator] = None,
        log: Optional[EventLog] = None,
    ):
        self.allocatable = allocatable
        self.teachers = teachers
        self.parameters = parameters
        self.cfg = cfg
        self.rng = rng if rng is not None else np.random.default_rng(cfg.seed)
        self.log = log or EventLog()
        self.history: List[Dict] = []
        self.best_trace: List[float] = []
        self.evaluations = 0

    def _evaluate_population(self, population: List[Individual], state: Dict) -> List[float]:
        fitnesses: List[float] = []
        for ind in population:
            res = evaluate(ind, self.allocatable, self.teachers, self.parameters, self.cfg, self.log)
            self.evaluations += 1
            fitnesses.append(res.score)
            if res.score > state["best_score"]:
                state["best_score"] = res.score
                state["best"] = ind.copy()
                state["stagnation"] = 0
            else:
                state["stagnation"] += 1
            self.best_trace.append(state["best_score"])
        return fitnesses

    def _vary(self, selected: List[Individual]) -> List[Individual]:
        # Pares consecutivos: cruce con prob. crossover_rate, si no quedan tal cual
        for i in range(0, len(selected) - 1, 2):
            if self.rng.random() < self.cfg.crossover_rate:
                selected[i], selected[i + 1] = single_point_crossover(selected[i], selected[i + 1], self.rng)
        for ind in selected:
            mutate(ind, self.allocatable, self.teachers, self.cfg.mutation_rate, self.rng)
        return selected

    def _next_generation(
        self, population: List[Individual], fitnesses: List[float], stagnation: int,
    ) -> List[Individual]:
        """Élites copiadas sin cambios, resto por torneo + variación; barajado si hay estancamiento."""
        cfg = self.cfg
        size = len(population)
        n_elite = elite_count(size, cfg.elite_fraction)
        ranked = sorted(range(size), key=lambda i: fitnesses[i], reverse=True)
        new_pop = [population[i].copy() for i in ranked[:n_elite]]

        selected = [
            tournament_select(population, fitnesses, self.rng, cfg.tournament_size).copy()
            for _ in range(n_elite, size)
        ]
        new_pop += self._vary(selected)

        if stagnation > cfg.shuffle_after:
            order = self.rng.permutation(len(new_pop))
            new_pop = [new_pop[int(i)] for i in order]
        return new_pop

    def evolve(self) -> SearchResult:
        if not self.allocatable:
            self.log.warning("Ningún alumno asignable. Se omite la optimización.")
            return SearchResult()

        cfg = self.cfg
        self.log.info("Iniciando optimización...")
        self.log.info(f"   Población: {cfg.population_size}")
        self.log.info(f"   Generaciones: {cfg.generations}")

        population = build_initial_population(self.allocatable, self.teachers, cfg.population_size)
        state = {"best": None, "best_score": -math.inf, "stagnation": 0}
        stopped_early = False

        for gen in range(cfg.generations):
            if not population:
                break
            fitnesses = self._evaluate_population(population, state)
            self.history.append({
                "gen": gen,
                "best_score": state["best_score"],
                "mean_score": float(np.mean(fitnesses)),
                "stagnation": state["stagnation"],
            })

            population = self._next_generation(population, fitnesses, state["stagnation"])

            if cfg.log_every and gen % cfg.log_every == 0:
                self.log.info(f"   Generación {gen}: Fitness = {state['best_score']:.2f} "
                              f"(sin mejoría: {state['stagnation']})")

            if state["stagnation"] > cfg.max_stagnation:
                self.log.info(f"   Parada anticipada: {state['stagnation']} evaluaciones sin mejoría")
                stopped_early = True
                break

        best: Optional[Individual] = state["best"]
        if best is None:
            self.log.warning("La búsqueda no evaluó ningún individuo: sin asignación")
            return SearchResult(
                generations_ran=len(self.history),
                history=self.history,
            )

        self.log.info(f"Optimización concluida. Mejor fitness: {best.fitness:.2f}")
        return SearchResult(
            best=best,
            best_score=best.fitness,
            assignment={rec.index: tid for rec, tid in zip(self.allocatable, best.genes)},
            generations_ran=len(self.history),
            evaluations=self.evaluations,
            stopped_early=stopped_early,
            history=self.history,
            best_trace=self.best_trace,
        )
