# core/logger.py
import logging
import os
import sys
from logging.handlers import RotatingFileHandler

# Chatty third-party loggers held at WARNING unless STOREFRONT_LOG_HTTP is set
NOISY_LOGGERS = ("urllib3", "charset_normalizer")

_configured = False


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


def setup_logging():
    global _configured
    if _configured:
        return

    level_name = os.getenv("STOREFRONT_LOG_LEVEL", os.getenv("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    to_stderr = _env_flag("STOREFRONT_LOG_TO_STDERR", "true")
    to_file = _env_flag("STOREFRONT_LOG_TO_FILE", "false")
    log_file = os.getenv("STOREFRONT_LOG_FILE", "/data/storefront.log")
    max_bytes = int(os.getenv("STOREFRONT_LOG_MAX_BYTES", str(2 * 1024 * 1024)))
    backups = int(os.getenv("STOREFRONT_LOG_BACKUPS", "3"))

    root = logging.getLogger()
    root.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )

    # Avoid duplicate handlers
    if not root.handlers:
        if to_stderr:
            # CLI listings go to stdout, diagnostics to stderr
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(formatter)
            root.addHandler(handler)

        if to_file:
            try:
                os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
                fh = RotatingFileHandler(
                    log_file, maxBytes=max_bytes, backupCount=backups
                )
                fh.setFormatter(formatter)
                root.addHandler(fh)
            except OSError as e:
                root.warning("Failed to initialize file logging at %s: %s", log_file, e)

    if not _env_flag("STOREFRONT_LOG_HTTP", "false"):
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str | None = None) -> logging.Logger:
    setup_logging()
    return logging.getLogger(name)
