# staff_allocation/data_loader.py
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Sequence

import pandas as pd

from .config import GAConfig
from .domains import NUMERIC_PATTERN, validate_parameter
from .events import EventLog
from .model import Component, ComponentId, EligibilityRelation, Teacher, TeacherId, TeachingRecord

RECORD_COLUMNS = ["year", "term", "component", "course", "students"]
TEACHER_COLUMNS = ["teacher", "capacity"]
RELATION_COLUMNS = ["component", "teacher", "course"]
COMPONENT_COLUMNS = ["component", "parameter"]


@dataclass(frozen=True)
class DataBundle:
    records: List[TeachingRecord]
    teachers: Dict[TeacherId, Teacher]
    relations: List[EligibilityRelation]
    components: Dict[ComponentId, Component]


def read_table(path: str, columns: Sequence[str], log: EventLog) -> pd.DataFrame:
    """
    Lee una tabla separada por ';' y delimitada por '"'. La cabecera es la
    primera línea no vacía y se descarta; las filas que quedan vacías tras
    quitar espacios también. Todas las celdas quedan como texto sin espacios
    extremos.
    Un archivo ausente o vacío produce una tabla vacía (no es fatal).
    """
    empty = pd.DataFrame(columns=list(columns), dtype=str)
    if not Path(path).is_file():
        log.warning(f"Archivo no encontrado: {path} - se usa tabla vacía", code="missing_input")
        return empty
    try:
        df = pd.read_csv(
            path,
            sep=";",
            quotechar='"',
            header=None,
            names=list(columns),
            index_col=False,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            encoding="utf-8-sig",
        )
    except pd.errors.EmptyDataError:
        log.warning(f"Archivo vacío: {path}", code="missing_input")
        return empty
    except (OSError, UnicodeDecodeError, pd.errors.ParserError) as e:
        log.warning(f"No se pudo leer {path}: {e} - se usa tabla vacía", code="missing_input")
        return empty
    df = df.fillna("")
    for col in df.columns:
        df[col] = df[col].astype(str).str.strip()
    df = df[(df != "").any(axis=1)]
    return df.iloc[1:].reset_index(drop=True)


def _numeric_prefix(values: pd.Series) -> pd.Series:
    """Prefijo numérico de cada celda: "15,5" -> 15, "abc" -> NaN."""
    prefix = values.astype(str).str.extract(f"^({NUMERIC_PATTERN})", expand=False)
    nums = pd.to_numeric(prefix, errors="coerce").astype(float)
    return nums.where(nums.abs() != float("inf"))


def _to_int(values: pd.Series) -> pd.Series:
    return _numeric_prefix(values).fillna(0).astype(int)


def _to_float(values: pd.Series) -> pd.Series:
    return _numeric_prefix(values).fillna(0.0)


def load_teachers(path: str, log: EventLog) -> Dict[TeacherId, Teacher]:
    df = read_table(path, TEACHER_COLUMNS, log)
    df = df[df["teacher"] != ""].copy()
    df["capacity"] = _to_float(df["capacity"])
    teachers: Dict[TeacherId, Teacher] = {}
    for r in df.itertuples(index=False):
        if r.teacher in teachers:
            log.warning(f"Docente duplicado {r.teacher} - se mantiene el primer registro", code="duplicate_teacher")
            continue
        teachers[r.teacher] = Teacher(teacher_id=r.teacher, capacity=float(r.capacity))
    log.info(f"Docentes únicos cargados: {len(teachers)}")
    return teachers


def load_components(path: str, log: EventLog, min_parameter: float = 0.01) -> Dict[ComponentId, Component]:
    df = read_table(path, COMPONENT_COLUMNS, log)
    df = df[df["component"] != ""].copy()
    components: Dict[ComponentId, Component] = {}
    for r in df.itertuples(index=False):
        # Una fila posterior del mismo componente reemplaza a la anterior
        components[r.component] = Component(
            component_id=r.component,
            parameter=validate_parameter(r.component, r.parameter, log, min_parameter),
        )
    valid = sum(1 for c in components.values() if c.has_parameter)
    log.info(f"Componentes con parámetro válido: {valid}")
    log.info(f"Componentes sin parámetro (críticos): {len(components) - valid}")
    return components


def load_relations(path: str, log: EventLog) -> List[EligibilityRelation]:
    df = read_table(path, RELATION_COLUMNS, log)
    df = df[(df["component"] != "") & (df["teacher"] != "")]
    merged: Dict[tuple, EligibilityRelation] = {}
    for r in df.itertuples(index=False):
        key = (r.component, r.teacher)
        rel = merged.get(key)
        if rel is None:
            rel = merged[key] = EligibilityRelation(component_id=r.component, teacher_id=r.teacher)
        if not rel.add_course(r.course):
            log.warning(f"Relación duplicada {r.component}/{r.teacher}/{r.course or 'ANY'} - fusionada",
                        code="duplicate_relation")
    log.info(f"Relaciones únicas cargadas: {len(merged)}")
    return list(merged.values())


def load_records(path: str, log: EventLog) -> List[TeachingRecord]:
    df = read_table(path, RECORD_COLUMNS, log)
    df["students"] = _to_int(df["students"])
    records = [
        TeachingRecord(
            index=i,
            year=r.year,
            term=r.term,
            component_id=r.component,
            course_id=r.course,
            students=int(r.students),
        )
        for i, r in enumerate(df.itertuples(index=False))
    ]
    log.info(f"Registros de alumnos cargados: {len(records)}")
    return records


def drop_unknown_teachers(
    relations: List[EligibilityRelation],
    teachers: Dict[TeacherId, Teacher],
    log: EventLog,
) -> List[EligibilityRelation]:
    """Descarta relaciones cuyo docente no figura en la tabla de CH declarada."""
    kept: List[EligibilityRelation] = []
    for rel in relations:
        if rel.teacher_id in teachers:
            kept.append(rel)
        else:
            log.warning(f"Relación {rel.component_id}/{rel.teacher_id} ignorada - docente sin CH declarada",
                        code="unknown_teacher")
    return kept


def load_data(cfg: GAConfig, log: EventLog) -> DataBundle:
    log.info("Cargando datos con validación de parámetros...")
    teachers = load_teachers(cfg.teachers_path, log)
    components = load_components(cfg.components_path, log, cfg.min_parameter)
    relations = drop_unknown_teachers(load_relations(cfg.relations_path, log), teachers, log)
    records = load_records(cfg.records_path, log)
    return DataBundle(
        records=records,
        teachers=teachers,
        relations=relations,
        components=components,
    )
