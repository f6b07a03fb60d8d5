# app/utils/logger.py
import logging

from app.core.config import settings

_level = getattr(logging, settings.log_level.upper(), logging.INFO)
_formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s")

logger = logging.getLogger("facturacion_core")
logger.setLevel(_level)
if not logger.handlers:
    ch = logging.StreamHandler()
    ch.setFormatter(_formatter)
    logger.addHandler(ch)

# Loggers de módulo (logging.getLogger(__name__)) viven bajo "app"
app_logger = logging.getLogger("app")
app_logger.setLevel(_level)
if not app_logger.handlers:
    ch = logging.StreamHandler()
    ch.setFormatter(_formatter)
    app_logger.addHandler(ch)
