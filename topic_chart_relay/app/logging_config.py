import logging
import os
import sys

# Guard so uvicorn reloads / warm serverless containers configure once
_logging_configured = False

DEFAULT_LOG_LEVEL = "INFO"
VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level_name=None):
    """
    Configure the root logger from LOG_LEVEL (or an explicit level name).
    Call once from the process entry point.
    """
    global _logging_configured
    if _logging_configured:
        return

    log_level_name = (level_name or os.environ.get('LOG_LEVEL', DEFAULT_LOG_LEVEL)).upper()

    if log_level_name not in VALID_LOG_LEVELS:
        # logger is not usable yet
        print(f"WARNING: Invalid LOG_LEVEL '{log_level_name}'. Defaulting to {DEFAULT_LOG_LEVEL}.", file=sys.stderr)
        log_level_name = DEFAULT_LOG_LEVEL

    logging.basicConfig(
        level=getattr(logging, log_level_name),
        format=LOG_FORMAT,
    )
    # Lambda pre-installs a handler, so basicConfig alone would not apply the level
    logging.getLogger().setLevel(log_level_name)

    _logging_configured = True
    logging.getLogger(__name__).info(f"Root logger configured. Log level set to: {log_level_name}")
