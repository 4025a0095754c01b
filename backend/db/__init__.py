from .session import Base, make_sessionmaker
from . import models  # noqa: F401

__all__ = ["Base", "make_sessionmaker", "models"]
