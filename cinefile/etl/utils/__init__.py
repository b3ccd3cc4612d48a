"""Import utilities package: logging."""

from cinefile.etl.utils.logger import setup_logger

__all__ = ["setup_logger"]
