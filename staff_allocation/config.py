"""
Configuración del algoritmo genético de asignación de carga docente.

Incluye un cargador desde YAML para dejar los parámetros reproducibles y
configurables. Por defecto: población 100, 200 generaciones y elitismo
del 10 %.
"""
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, Optional, Any

import yaml


@dataclass
class GAConfig:
    # Algoritmo genético
    population_size: int = 100
    generations: int = 200
    elite_fraction: float = 0.1
    tournament_size: int = 3
    crossover_rate: float = 0.9
    mutation_rate: float = 0.15
    shuffle_after: int = 10      # estancamiento que dispara el barajado
    max_stagnation: int = 50     # estancamiento que detiene la búsqueda
    seed: Optional[int] = None
    log_every: int = 20

    # Validación de parámetros y horas
    min_parameter: float = 0.01
    max_hours: float = 10000.0
    overload_threshold: float = 200.0
    absurd_total_hours: float = 1000.0

    # Pesos del fitness
    weight_negative_count: float = 100000.0
    weight_negative_sum: float = 10000.0
    weight_idle: float = 100.0
    weight_overload: float = 1000.0

    # Entradas / salidas
    records_path: str = "upload/alunos.csv"
    teachers_path: str = "upload/docentes.csv"
    relations_path: str = "upload/hierarquias.csv"
    components_path: str = "upload/componentes.csv"
    output_path: str = "relatorio_alocacao.csv"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GAConfig":
        merged = asdict(cls())
        for k, v in data.items():
            if k in merged:
                merged[k] = v
        return cls(**merged)

    def with_overrides(self, **overrides: Any) -> "GAConfig":
        """Copia con los valores no nulos de `overrides` (flags de CLI)."""
        data = asdict(self)
        data.update({k: v for k, v in overrides.items() if v is not None})
        return GAConfig.from_dict(data)


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    text = path.read_text(encoding="utf-8")
    return yaml.safe_load(text) or {}


def load_config(path: str = "config.yaml") -> GAConfig:
    cfg_path = Path(path)
    data = _load_yaml(cfg_path)
    if not isinstance(data, dict):
        raise ValueError(f"{path} debe contener un objeto mapeo")
    return GAConfig.from_dict(data)
