import logging
import os
from datetime import datetime

from .env import env_get


def setup_logging(level=None):
    """Setup basic logging configuration"""
    if level is None:
        level = env_get("WARERA_LOG_LEVEL", "INFO").upper()

    log_dir = env_get("WARERA_LOG_DIR", "logs")
    os.makedirs(log_dir, exist_ok=True)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        handlers=[
            logging.FileHandler(
                os.path.join(
                    log_dir, f"tracker_{datetime.now().strftime('%Y-%m-%d')}.log"
                )
            ),
            logging.StreamHandler(),
        ],
    )
    return logging.getLogger(__name__)
