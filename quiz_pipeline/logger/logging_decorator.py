"""
Centralized Logging Utilities and Decorators

Provides the logging setup and function decorators shared by every component
of the quiz pipeline (registry, question stores, tracking index, adapters,
scrapers).

Usage:
    from quiz_pipeline.logger import setup_logging, log_function

    # Setup logging for a component
    logger = setup_logging(logger_name="tracking", verbose=True)

    # Decorate batch entry points for automatic logging
    @log_function(logger_name="tracking", log_args=True)
    def sync(families=None):
        ...
"""

import functools
import logging
import os
import time
from pathlib import Path
from typing import Optional, Callable, Any


DEFAULT_LOG_DIR = "logs"


def default_log_file(logger_name: str) -> str:
    """Return logs/<logger_name>.log, honouring QUIZ_LOG_DIR."""
    log_dir = os.getenv("QUIZ_LOG_DIR", DEFAULT_LOG_DIR)
    return str(Path(log_dir) / f"{logger_name}.log")


def setup_logging(
    logger_name: str,
    log_file: Optional[str] = None,
    verbose: bool = False,
    level: int = logging.INFO,
) -> logging.Logger:
    """
    Set up logging with file and optional console handlers.

    Args:
        logger_name: Name for the logger (e.g., "tracking")
        log_file: Path to log file (default: "<QUIZ_LOG_DIR>/<logger_name>.log")
        verbose: If True, add console handler with DEBUG level (default: False)
        level: Base logging level (default: logging.INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    # Avoid adding multiple handlers if already configured
    if logger.handlers:
        if verbose:
            _add_console_handler(logger)
        return logger

    logger.setLevel(logging.DEBUG if verbose else level)

    log_path = Path(log_file or default_log_file(logger_name))
    log_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    logger.addHandler(file_handler)

    if verbose:
        _add_console_handler(logger)

    return logger


def _add_console_handler(logger: logging.Logger) -> None:
    if any(getattr(h, "_quiz_console", False) for h in logger.handlers):
        return
    logger.setLevel(logging.DEBUG)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    console_handler._quiz_console = True
    logger.addHandler(console_handler)


def log_function(
    logger_name: Optional[str] = None,
    log_file: Optional[str] = None,
    level: int = logging.INFO,
    log_args: bool = False,
    log_result: bool = False,
    log_execution_time: bool = True,
) -> Callable:
    """
    Decorator to automatically log function entry, exit, execution time, and exceptions.

    Args:
        logger_name: Custom logger name (if None, uses the decorated function's module name)
        log_file: Optional custom log file path (if None, uses existing logger config)
        level: Log level for entry/exit messages (default: logging.INFO)
        log_args: If True, log function arguments (default: False)
        log_result: If True, log return value (default: False)
        log_execution_time: If True, log execution duration (default: True)

    Returns:
        Decorated function with logging

    Example:
        @log_function(logger_name="scraper", log_args=True)
        def acquire(unit):
            ...
    """

    def decorator(func: Callable) -> Callable:
        name = logger_name or func.__module__

        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            if log_file:
                logger = setup_logging(
                    logger_name=f"{name}.{func.__name__}",
                    log_file=log_file,
                    level=level,
                )
            else:
                logger = logging.getLogger(name)
                if not logger.handlers:
                    logger = setup_logging(name, level=level)

            func_name = func.__qualname__
            log_msg = f"Calling {func_name}"

            if log_args and (args or kwargs):
                args_repr = [repr(a) for a in args]
                kwargs_repr = [f"{k}={v!r}" for k, v in kwargs.items()]
                log_msg += f" with args: {', '.join(args_repr + kwargs_repr)}"

            logger.log(level, log_msg)

            start_time = time.time()

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                execution_time = time.time() - start_time
                logger.error(
                    f"Exception in {func_name} after {execution_time:.2f}s: {type(e).__name__}: {e}",
                    exc_info=True,
                )
                raise

            completion_msg = f"Completed {func_name}"
            if log_execution_time:
                completion_msg += f" in {time.time() - start_time:.2f}s"
            if log_result:
                completion_msg += f" with result: {result!r}"
            logger.log(level, completion_msg)

            return result

        return wrapper

    return decorator


def log_with_timer(logger_name: Optional[str] = None) -> Callable:
    """
    Simple decorator that logs function entry/exit with execution time.

    Example:
        @log_with_timer("tracking")
        def summary():
            ...
    """
    return log_function(
        logger_name=logger_name,
        log_args=False,
        log_result=False,
        log_execution_time=True,
    )
