import logging

_FORMAT = "[%(name)s] %(levelname)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
  """Attach one stream handler to the root logger (idempotent)."""
  root = logging.getLogger()
  if not any(getattr(h, "_rift_handler", False) for h in root.handlers):
    h = logging.StreamHandler()
    h.setFormatter(logging.Formatter(_FORMAT))
    h._rift_handler = True
    root.addHandler(h)
  root.setLevel(level.upper())
  # httpx logs every request at INFO; our own step logs cover that
  logging.getLogger("httpx").setLevel(logging.WARNING)
