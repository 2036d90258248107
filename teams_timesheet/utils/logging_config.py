import logging
import logging.handlers
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'

# Component loggers that also get their own rotating file
COMPONENT_LOG_FILES = {
    'teams_timesheet.utils.scheduler': "scheduler.log",
    'teams_timesheet.services.teams_service': "teams_service.log",
    'teams_timesheet.services.timesheet_service': "timesheet_service.log",
    'teams_timesheet.handlers.bot_handler': "bot_handler.log",
}

NOISY_LOGGERS = ('urllib3', 'requests', 'httpx', 'msal', 'apscheduler.executors')


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter, max_mb: int = 5, backups: int = 3):
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=max_mb * 1024 * 1024,
        backupCount=backups,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(level: Optional[str] = None, logs_path: str = "logs"):
    """
    Configure logging for the Teams timesheet service.
    Creates separate log files for different components with rotation.
    """
    logs_dir = Path(logs_path)
    logs_dir.mkdir(exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_level = getattr(logging, (level or "INFO").upper(), logging.INFO)
    root_logger.setLevel(root_level)
    root_logger.handlers.clear()

    # Console handler (for container logs)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(root_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    root_logger.addHandler(_rotating_handler(logs_dir / "app.log", logging.INFO, formatter, max_mb=10, backups=5))

    for logger_name, file_name in COMPONENT_LOG_FILES.items():
        component_logger = logging.getLogger(logger_name)
        component_logger.handlers.clear()
        component_logger.addHandler(_rotating_handler(logs_dir / file_name, logging.DEBUG, formatter))
        component_logger.setLevel(logging.DEBUG)

    # Error-only log file for critical issues
    root_logger.addHandler(_rotating_handler(logs_dir / "errors.log", logging.ERROR, formatter, backups=5))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info("Logging configuration completed")
    logger.info(f"Log files will be saved to: {logs_dir.absolute()}")

    return logs_dir


def get_log_files_info(logs_path: str = "logs"):
    """Sizes and modification times of the log files."""
    logs_dir = Path(logs_path)
    if not logs_dir.exists():
        return {"status": "No logs directory found"}

    log_files = {}
    for log_file in sorted(logs_dir.glob("*.log")):
        try:
            stat = log_file.stat()
            log_files[log_file.name] = {
                "size_mb": round(stat.st_size / (1024 * 1024), 2),
                "modified": datetime.fromtimestamp(stat.st_mtime).strftime("%Y-%m-%d %H:%M:%S")
            }
        except OSError as e:
            log_files[log_file.name] = {"error": str(e)}

    return log_files
