import logging
import pathlib
import sys

_root_logger = logging.getLogger()

FILE_FORMAT = "%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s.%(funcName)s:%(lineno)d %(message)s"


def _has_handler(logger: logging.Logger, kind: type) -> bool:
    return any(type(h) is kind for h in logger.handlers)


def setup_logging_to_file(
    path: str | pathlib.Path,
    level: int | str = logging.INFO,
    *,
    logger: logging.Logger = _root_logger,
) -> pathlib.Path:
    log_path = pathlib.Path(path).expanduser()
    logger.setLevel(level)
    if any(isinstance(h, logging.FileHandler) and h.baseFilename == str(log_path.resolve()) for h in logger.handlers):
        return log_path
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path)
    file_handler.formatter = logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    logger.addHandler(file_handler)
    return log_path


def setup_logging_to_console(level: int | str = logging.INFO, *, logger: logging.Logger = _root_logger):
    logger.setLevel(level)
    if not sys.stdout.isatty():
        if not _has_handler(logger, logging.StreamHandler):
            handler = logging.StreamHandler()
            handler.formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
            logger.addHandler(handler)
        return

    from rich.logging import RichHandler
    from rich.traceback import install

    if _has_handler(logger, RichHandler):
        return
    install(show_locals=False)
    logger.addHandler(RichHandler(rich_tracebacks=True, level=level, show_time=True))
