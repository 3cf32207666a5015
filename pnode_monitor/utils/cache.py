from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Valor cacheado + instante de la descarga. Se reemplaza entero, nunca se muta."""
    value: T
    fetched_at: float

    def age(self, now: float) -> float:
        return now - self.fetched_at
