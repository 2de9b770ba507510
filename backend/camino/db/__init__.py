"""Database utilities and models."""

from camino.db.base import Base
from camino.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
