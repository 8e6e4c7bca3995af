import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger("ats_engine")
    root.setLevel(level.upper())

    if any(getattr(handler, "_ats_engine", False) for handler in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._ats_engine = True  # type: ignore[attr-defined]
    root.addHandler(handler)
