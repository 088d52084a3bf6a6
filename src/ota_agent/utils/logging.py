"""Logging setup for the OTA agent.

Components log through children of the ``ota_agent`` logger
(``ota_agent.download``, ``ota_agent.orchestrator``, ...). Handlers live only
on that logger; levels may be tuned per component from the config.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from ota_agent.models.config import AgentConfig

AGENT_LOGGER = "ota_agent"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
ISO_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"

# Marks handlers installed here so a reconfigure replaces only those
_AGENT_HANDLER = "_ota_agent_handler"


def setup_logger(config: AgentConfig, name: str = AGENT_LOGGER) -> logging.Logger:
    """Route agent logs to a rotating file and the console.

    Calling it again (e.g. after reloading the config) swaps the previously
    installed handlers for new ones and reapplies every level, so it never
    stacks duplicate output.

    Args:
        config: Agent configuration (``log_file``, ``log_level``,
            ``log_levels``, ``log_max_bytes``, ``log_backup_count``)
        name: Logger the handlers are attached to

    Returns:
        The configured agent logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(config.log_level)
    for component, level in config.log_levels.items():
        logging.getLogger(f"{name}.{component}").setLevel(level)

    for handler in [h for h in logger.handlers if getattr(h, _AGENT_HANDLER, False)]:
        logger.removeHandler(handler)
        handler.close()

    log_path = Path(config.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=ISO_DATEFMT)
    # Handlers stay at NOTSET so a component raised to DEBUG is not filtered again
    for handler in (
        RotatingFileHandler(
            log_path,
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
            encoding="utf-8",
        ),
        logging.StreamHandler(),
    ):
        handler.setFormatter(formatter)
        setattr(handler, _AGENT_HANDLER, True)
        logger.addHandler(handler)

    return logger
