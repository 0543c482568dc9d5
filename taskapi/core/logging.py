import logging
import sys

# Third-party loggers that are chatty at INFO/DEBUG.
_NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite", "sqlalchemy.engine", "aiosmtplib")

_HANDLER_MARK = "_taskapi_handler"


def setup_logging(level: str | int = logging.INFO) -> None:
    """
    Configure root logging with a single stderr handler.

    Call this once at startup, before the first log record is emitted.
    A handler installed by an earlier call is replaced, so repeated app
    construction (tests, reloads) does not duplicate output. Handlers added
    by anyone else are left alone.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            root.removeHandler(handler)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(fmt)
    setattr(handler, _HANDLER_MARK, True)
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.captureWarnings(True)
