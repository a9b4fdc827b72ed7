import logging

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


# PUBLIC_INTERFACE
def setup_logging(level: str = "INFO") -> None:
    """Attach one stream handler to the root logger. Safe to call repeatedly."""
    global _configured
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if _configured:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(handler)
    _configured = True
