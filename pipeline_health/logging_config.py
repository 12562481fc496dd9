import logging
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once; later calls are no-ops."""
    if logging.getLogger().handlers:
        return

    if level is None:
        from .config import get_settings
        level = get_settings().log_level

    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
