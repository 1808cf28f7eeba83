"""
Observador de eventos del núcleo.

El núcleo (clasificación, búsqueda, reporte) nunca imprime: recibe un
`EventLog` que guarda cada evento en memoria y lo reenvía a un logger
estándar. Quien necesite inspeccionar lo ocurrido consulta `events` y
`counts`.
"""
import logging
from collections import Counter
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Event:
    level: int
    code: str
    message: str


class EventLog:
    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("staff_allocation")
        self.events: List[Event] = []
        self.counts: Counter = Counter()

    def emit(self, level: int, message: str, code: str = "") -> None:
        self.events.append(Event(level, code, message))
        if code:
            self.counts[code] += 1
        self.logger.log(level, message)

    def info(self, message: str, code: str = "") -> None:
        self.emit(logging.INFO, message, code)

    def warning(self, message: str, code: str = "") -> None:
        self.emit(logging.WARNING, message, code)

    def error(self, message: str, code: str = "") -> None:
        self.emit(logging.ERROR, message, code)
