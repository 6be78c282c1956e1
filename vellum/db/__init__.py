from vellum.db.base import Base

__all__ = ["Base"]
