"""Fixed-capacity mapping used for every frequency table in the engine."""

from typing import Any, Callable, Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class BoundedDict(dict, Generic[K, V]):
    """A dict that refuses new keys once ``capacity`` is reached.

    Existing keys keep updating; nothing is ever evicted. Refused writes
    are counted in ``rejected``.
    """

    def __init__(self, capacity: int):
        if capacity < 0:
            raise ValueError("capacity must be non-negative")
        super().__init__()
        self.capacity = capacity
        self.rejected = 0

    @property
    def is_full(self) -> bool:
        return len(self) >= self.capacity

    def admits(self, key: K) -> bool:
        return key in self or len(self) < self.capacity

    def __setitem__(self, key: K, value: V) -> None:
        if not self.admits(key):
            self.rejected += 1
            return
        super().__setitem__(key, value)

    def setdefault(self, key: K, default: V | None = None) -> V | None:
        if key in self:
            return self[key]
        if not self.admits(key):
            self.rejected += 1
            return None
        super().__setitem__(key, default)
        return default

    def get_or_create(self, key: K, factory: Callable[[], V]) -> V | None:
        """Return the value for ``key``, creating it if capacity allows."""
        if key in self:
            return self[key]
        if not self.admits(key):
            self.rejected += 1
            return None
        value = factory()
        super().__setitem__(key, value)
        return value

    def increment(self, key: K, amount: Any = 1) -> bool:
        """Add ``amount`` to a numeric counter. Returns False if refused."""
        if key in self:
            super().__setitem__(key, self[key] + amount)
            return True
        if not self.admits(key):
            self.rejected += 1
            return False
        super().__setitem__(key, amount)
        return True

    def update(self, *args: Any, **kwargs: Any) -> None:  # type: ignore[override]
        for key, value in dict(*args, **kwargs).items():
            self[key] = value
