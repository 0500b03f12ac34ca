import logging
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session


class BaseService:
    """
    Base class for domain services.
    Holds the request-scoped session and a per-service logger.
    """

    def __init__(self, db: Session):
        self.db = db
        self._logger = logging.getLogger(self.__class__.__module__)

    def log_info(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self._logger.info(message, extra=extra or {})

    def log_warning(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self._logger.warning(message, extra=extra or {})

    def log_error(self, message: str, extra: Optional[Dict[str, Any]] = None, exc_info: bool = False):
        self._logger.error(message, extra=extra or {}, exc_info=exc_info)

    def commit(self):
        """Commit the unit of work, rolling back on failure."""
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
