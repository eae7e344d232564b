# config.py

import logging
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_string(name: str, default: Optional[str] = None) -> Optional[str]:
    """Return trimmed string-valued env vars, normalizing empty strings to the default."""
    raw = os.getenv(name, default)
    if raw is None:
        return default
    clean = raw.strip()
    return clean if clean else default


def _env_int(name: str, default: int) -> int:
    try:
        return int(_env_string(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(_env_string(name, str(default)))
    except ValueError:
        return default


class Config:
    HOST = _env_string("PRINT_HOST", "127.0.0.1")
    PORT = _env_int("PRINT_PORT", 3500)
    LOG_LEVEL = (_env_string("PRINT_LOG_LEVEL", "INFO") or "INFO").upper()

    # Receipt defaults and labels
    VENDOR_NAME = _env_string("RECEIPT_VENDOR_NAME", "PharmaCare")
    CUSTOMER_DEFAULT = _env_string("RECEIPT_CUSTOMER_DEFAULT", "Client anonyme")
    PRODUCT_DEFAULT = "Produit"
    CURRENCY = _env_string("RECEIPT_CURRENCY", "F")
    CURRENCY_LONG = _env_string("RECEIPT_CURRENCY_LONG", "F CFA")
    FOOTER = _env_string("RECEIPT_FOOTER", "Meilleure Santé !")
    PAPER_WIDTH_MM = _env_int("RECEIPT_PAPER_WIDTH_MM", 55)

    # Print surface
    SURFACE_LABEL = _env_string("SURFACE_LABEL", "print_window")
    SURFACE_TITLE = _env_string("SURFACE_TITLE", "Impression Facture")
    SURFACE_WIDTH = _env_int("SURFACE_WIDTH", 320)
    SURFACE_HEIGHT = _env_int("SURFACE_HEIGHT", 600)
    SURFACE_READY_TIMEOUT = _env_float("SURFACE_READY_TIMEOUT", 10.0)
    SURFACE_CLOSE_TIMEOUT = _env_float("SURFACE_CLOSE_TIMEOUT", 5.0)
    PRINT_ACK_TIMEOUT = _env_float("PRINT_ACK_TIMEOUT", 120.0)


def configure_logging(app_logger: logging.Logger, level_name: str = Config.LOG_LEVEL) -> None:
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app_logger.setLevel(level)
    logging.getLogger("werkzeug").setLevel(level)
