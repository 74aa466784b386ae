"""
Logging setup and stage decorators for the stream_digest pipeline.

Each concern logs to its own named logger ("pipeline", "parser",
"audio_handler", ...). The CLI attaches handlers once per run with
configure_pipeline_logging; library code only ever calls
logging.getLogger(name), so tests and embedding applications keep control of
where records go.

Usage:
    from stream_digest.logger import configure_pipeline_logging, log_function

    configure_pipeline_logging(log_file="logs/pipeline.log", verbose=True)

    @log_function(logger_name="pipeline")
    def run_selection_stage(streams, store, max_streams):
        ...
"""

import functools
import logging
import time
from pathlib import Path
from typing import Callable, Optional


DEFAULT_LOG_FILE = "logs/pipeline.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CONSOLE_FORMAT = "%(levelname)s: [%(name)s] %(message)s"

PIPELINE_LOGGERS = (
    "pipeline",
    "scraper",
    "parser",
    "audio_handler",
    "transcript",
    "summarize",
    "database",
)


def setup_logging(
    logger_name: str,
    log_file: str = DEFAULT_LOG_FILE,
    verbose: bool = False,
    level: int = logging.INFO,
) -> logging.Logger:
    """
    Attach a file handler (and a console handler in verbose mode) to a logger.

    Calling it again for a logger that already has handlers is a no-op.

    Args:
        logger_name: Logger to configure (e.g. "pipeline")
        log_file: Log file path; parent directories are created
        verbose: Also log DEBUG and above to the console
        level: Level for the file handler

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG if verbose else level)

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(file_handler)

    if verbose:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        logger.addHandler(console_handler)

    return logger


def configure_pipeline_logging(
    log_file: str = DEFAULT_LOG_FILE, verbose: bool = False
) -> logging.Logger:
    """Configure every pipeline logger to share one log file.

    Returns:
        The "pipeline" logger
    """
    for name in PIPELINE_LOGGERS:
        setup_logging(logger_name=name, log_file=log_file, verbose=verbose)
    return logging.getLogger("pipeline")


def _describe_call(func: Callable, args: tuple, kwargs: dict) -> str:
    parts = [repr(a) for a in args] + [f"{k}={v!r}" for k, v in kwargs.items()]
    # Stream lists and HTML documents make huge reprs
    text = ", ".join(parts)
    if len(text) > 300:
        text = text[:300] + "..."
    return f"{func.__name__}({text})"


def log_function(
    logger_name: Optional[str] = None,
    level: int = logging.INFO,
    log_args: bool = False,
    log_execution_time: bool = True,
) -> Callable:
    """
    Log entry, completion and failures of the decorated function.

    Failures are logged with their traceback and re-raised unchanged. No
    handlers are attached here.

    Args:
        logger_name: Logger to use (defaults to the function's module name)
        level: Level for the entry and completion records
        log_args: Include a truncated repr of the call arguments
        log_execution_time: Include the elapsed time on completion

    Example:
        @log_function(logger_name="audio_handler", log_args=True)
        def denoise(self, input_path, output_path):
            ...
    """

    def decorator(func: Callable) -> Callable:
        name = logger_name or func.__module__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = logging.getLogger(name)
            if log_args:
                logger.log(level, f"Calling {_describe_call(func, args, kwargs)}")
            else:
                logger.log(level, f"Calling {func.__name__}")

            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed = time.perf_counter() - started
                logger.error(
                    f"{func.__name__} failed after {elapsed:.2f}s: {type(e).__name__}: {e}",
                    exc_info=True,
                )
                raise

            if log_execution_time:
                elapsed = time.perf_counter() - started
                logger.log(level, f"Completed {func.__name__} in {elapsed:.2f}s")
            else:
                logger.log(level, f"Completed {func.__name__}")
            return result

        return wrapper

    return decorator
