import argparse
import logging
import sys
import time

import numpy as np

from staff_allocation.classifier import ConservationError
from staff_allocation.config import GAConfig, load_config
from staff_allocation.data_loader import load_data
from staff_allocation.domains import CompatibilityIndex, audit_teacher
from staff_allocation.events import EventLog
from staff_allocation.logger_config import setup_logging
from staff_allocation.pipeline import run_allocation
from staff_allocation.report import write_history, write_report


def build_parser() -> argparse.ArgumentParser:
    defaults = GAConfig()
    parser = argparse.ArgumentParser(description="Asignación de carga docente con algoritmo genético")
    parser.add_argument("--config", default="config.yaml", help="Ruta al archivo de configuración YAML")
    parser.add_argument("--records", help=f"Registros de alumnos (default: {defaults.records_path})")
    parser.add_argument("--teachers", help=f"CH declarada por docente (default: {defaults.teachers_path})")
    parser.add_argument("--relations", help=f"Relaciones componente/docente (default: {defaults.relations_path})")
    parser.add_argument("--components", help=f"Parámetros de componentes (default: {defaults.components_path})")
    parser.add_argument("--output", help=f"Reporte de salida (default: {defaults.output_path})")
    parser.add_argument("--population", type=int, help=f"Tamaño de población (default: {defaults.population_size})")
    parser.add_argument("--generations", type=int, help=f"Máximo de generaciones (default: {defaults.generations})")
    parser.add_argument("--seed", type=int, help="Semilla del generador aleatorio")
    parser.add_argument("--history", help="CSV opcional con la evolución por generación")
    parser.add_argument("--audit-teacher", action="append", default=[], metavar="ID",
                        help="Lista los componentes del docente que no tienen parámetro (repetible)")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--log-file")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_file)
    log = EventLog(logging.getLogger("staff_allocation"))

    cfg = load_config(args.config).with_overrides(
        records_path=args.records,
        teachers_path=args.teachers,
        relations_path=args.relations,
        components_path=args.components,
        output_path=args.output,
        population_size=args.population,
        generations=args.generations,
        seed=args.seed,
    )
    rng = np.random.default_rng(cfg.seed)

    bundle = load_data(cfg, log)
    if args.audit_teacher:
        index = CompatibilityIndex(bundle.relations)
        for tid in args.audit_teacher:
            audit_teacher(tid, index, bundle.components, log)

    start = time.perf_counter()
    try:
        outcome = run_allocation(bundle, cfg, rng, log)
    except ConservationError as e:
        log.error(str(e))
        return 1
    elapsed = time.perf_counter() - start

    write_report(outcome.report, cfg.output_path, log)
    if args.history and outcome.search.history:
        write_history(outcome.search.history, args.history)

    summary = outcome.report.summary
    print(f"\nMejor fitness: {outcome.search.best_score} | Generaciones: {outcome.search.generations_ran} "
          f"| Evaluaciones: {outcome.search.evaluations} | Tiempo: {elapsed:.2f}s")
    print(f"Saldo negativo: {summary.negative_teachers} | Sin alumnos: {summary.idle_teachers} "
          f"| CH anuladas: {summary.absurd_hours} | Nivel: {summary.grade}")
    print(f"Se guardó el reporte en {cfg.output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
