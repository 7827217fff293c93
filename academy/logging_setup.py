import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(funcName)s: %(message)s"

def _handler_for(app):
    log_file = app.config.get("LOG_FILE")
    if not log_file:
        return logging.StreamHandler(), LOG_FORMAT
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(path, maxBytes=2_000_000, backupCount=5), FILE_FORMAT

def configure_logging(app):
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO

    pkg_logger = logging.getLogger("academy")
    pkg_logger.setLevel(level)
    if not any(getattr(h, "_academy", False) for h in pkg_logger.handlers):
        handler, fmt = _handler_for(app)
        handler.setFormatter(logging.Formatter(fmt))
        handler._academy = True
        pkg_logger.addHandler(handler)
    pkg_logger.propagate = app.testing

    app.logger.setLevel(level)
    # request lines from the dev server are noise at INFO
    logging.getLogger("werkzeug").setLevel(max(level, logging.WARNING))
