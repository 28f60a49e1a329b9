"""
Node initializer registry and dispatch utilities.

This module defines `Initializer`, the concrete `NodeInitializer` used by
constant and parameter leaves. Fill strategies are registered by name via a
decorator and resolved when an `Initializer` is constructed, so a typo in an
initializer name fails when the leaf is built rather than when it is first
evaluated.

Usage example
-------------
Registering a strategy:

    @Initializer.register_initializer("ones", deterministic=True)
    def ones(data, rng):
        data.fill(1)

Using it:

    init = Initializer("ones")
    graph.param("b", (1, 16), init=init)

Notes
-----
- Strategies fill the preallocated array in place; the array already has the
  leaf's shape and dtype.
- Random strategies must draw from ``rng`` (the graph's generator) rather
  than the global NumPy state.
- Strategies registered as deterministic expose a `cache_key`, which lets the
  graph share identical constants.
"""

from __future__ import annotations

from typing import Any, Callable, ClassVar, Dict, Hashable, Optional, TypeVar

from ...domain._initializer import NodeInitializer

T = TypeVar("T", bound=Callable[..., None])


class Initializer(NodeInitializer):
    """
    Registry-backed leaf initializer.

    Parameters
    ----------
    initializer_name : str
        Registered strategy name.
    *args, **kwargs
        Strategy arguments, forwarded after ``(data, rng)``.

    Raises
    ------
    ValueError
        If ``initializer_name`` is not registered.
    """

    INITIALIZERS: ClassVar[Dict[str, Callable[..., None]]] = {}
    DETERMINISTIC: ClassVar[set] = set()

    def __init__(self, initializer_name: str, *args: Any, **kwargs: Any) -> None:
        try:
            self._initializer = self.INITIALIZERS[initializer_name]
        except KeyError as e:
            available = ", ".join(sorted(self.INITIALIZERS)) or "<none>"
            raise ValueError(
                f"Unsupported initializer name: {initializer_name!r}. "
                f"Available: {available}"
            ) from e
        self.name = initializer_name
        self.args = args
        self.kwargs = kwargs

    @classmethod
    def register_initializer(
        cls, name: str, *, deterministic: bool = False, overwrite: bool = False
    ) -> Callable[[T], T]:
        """
        Decorator to register a fill strategy under `name`.

        Parameters
        ----------
        name:
            Registry key used to retrieve the strategy later.
        deterministic:
            Whether the filled contents depend only on the arguments.
        overwrite:
            If False (default), raises if `name` is already registered.
        """
        if not isinstance(name, str) or not name:
            raise ValueError("Initializer name must be a non-empty string")

        def decorator(func: T) -> T:
            if not overwrite and name in cls.INITIALIZERS:
                raise ValueError(f"Initializer already registered: {name!r}")
            cls.INITIALIZERS[name] = func
            if deterministic:
                cls.DETERMINISTIC.add(name)
            else:
                cls.DETERMINISTIC.discard(name)
            return func

        return decorator

    @classmethod
    def available(cls) -> tuple[str, ...]:
        """Return registered initializer names (sorted)."""
        return tuple(sorted(cls.INITIALIZERS))

    @property
    def cache_key(self) -> Optional[Hashable]:
        if self.name not in self.DETERMINISTIC:
            return None
        key = (self.name, self.args, tuple(sorted(self.kwargs.items())))
        try:
            hash(key)
        except TypeError:
            return None
        return key

    def apply(self, data: Any, rng: Any) -> None:
        self._initializer(data, rng, *self.args, **self.kwargs)

    def __repr__(self) -> str:
        params = [repr(a) for a in self.args]
        params += [f"{k}={v!r}" for k, v in self.kwargs.items()]
        return f"Initializer({self.name!r}{''.join(', ' + p for p in params)})"
