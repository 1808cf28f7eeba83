# staff_allocation/pipeline.py
from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np

from .classifier import ClassificationResult, classify
from .config import GAConfig
from .data_loader import DataBundle
from .domains import CompatibilityIndex
from .events import EventLog
from .ga import GeneticSolver, SearchResult
from .report import Report, build_report


@dataclass
class AllocationOutcome:
    classification: ClassificationResult
    search: SearchResult
    report: Report


def valid_parameters(bundle: DataBundle) -> Dict[str, float]:
    return {cid: c.parameter for cid, c in bundle.components.items() if c.parameter is not None}


def run_allocation(
    bundle: DataBundle,
    cfg: GAConfig,
    rng: Optional[np.random.Generator] = None,
    log: Optional[EventLog] = None,
) -> AllocationOutcome:
    """
    Clasificación -> búsqueda genética -> reporte, todo en memoria.

    Raises:
        ConservationError: si la clasificación no conserva el total de alumnos.
    """
    log = log or EventLog()
    rng = rng if rng is not None else np.random.default_rng(cfg.seed)

    index = CompatibilityIndex(bundle.relations)
    classification = classify(bundle.records, bundle.components, index, log)
    parameters = valid_parameters(bundle)

    solver = GeneticSolver(classification.allocatable, bundle.teachers, parameters, cfg, rng, log)
    search = solver.evolve()

    report = build_report(bundle.records, bundle.teachers, search.assignment, parameters, cfg, log)
    return AllocationOutcome(classification=classification, search=search, report=report)
