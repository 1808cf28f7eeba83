# staff_allocation/logger_config.py
import logging
import os
from typing import Optional

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Configura el logging de toda la aplicación.
    Debe llamarse una sola vez al arrancar el CLI.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR o CRITICAL.
        log_file: ruta opcional de un archivo de log adicional a la consola.
    """
    # Limpiar handlers previos para no duplicar salidas
    for handler in list(logging.root.handlers):
        logging.root.removeHandler(handler)

    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Nivel de log inválido: {log_level}")
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT, datefmt="%H:%M:%S")

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        logging.root.addHandler(file_handler)
        logging.getLogger(__name__).info("Log también en '%s'", log_file)
