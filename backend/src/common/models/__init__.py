from .base import Base, CreatedAtMixin


__all__ = [
    "Base",
    "CreatedAtMixin",
]
