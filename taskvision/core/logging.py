"""
Logging-Konfiguration: einmal beim App-Start aufrufen.
Module loggen über logging.getLogger(__name__) unterhalb von "taskvision".
"""
import logging
import sys


def setup_logging(
    level: int | str = logging.INFO,
    format_string: str | None = None,
) -> None:
    if format_string is None:
        format_string = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=format_string,
        stream=sys.stdout,
        force=True,
    )
    # Uvicorn-Logger auf dieselbe Stufe bringen
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)
    logging.getLogger("taskvision").setLevel(level)
