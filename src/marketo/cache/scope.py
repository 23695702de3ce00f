"""Cache scope: the isolation boundary of one test run."""

from dataclasses import dataclass
from typing import Any, ClassVar, Mapping


@dataclass(frozen=True)
class CacheScope:
    """
    Ordered tuple of identifiers naming one isolated cache namespace.

    Built from the orchestration host's id map (scenario and requestor).
    Components are escaped before joining so that distinct tuples can never
    produce the same prefix: ``("ab", "c")`` and ``("a", "bc")`` differ, and
    so do ``("a:b", "c")`` and ``("a", "b:c")``.
    """

    SEPARATOR: ClassVar[str] = ":"

    components: tuple[str, ...]

    def __post_init__(self):
        components = tuple(self.components)
        if len(components) < 2:
            raise ValueError(
                f"CacheScope needs at least two components, got {len(components)}"
            )
        for component in components:
            if not isinstance(component, str) or not component:
                raise ValueError(
                    f"CacheScope components must be non-empty strings, got {component!r}"
                )
        object.__setattr__(self, "components", components)

    @classmethod
    def of(cls, *components: str) -> "CacheScope":
        return cls(tuple(components))

    @classmethod
    def from_id_map(cls, id_map: Mapping[str, Any]) -> "CacheScope":
        """Scope for one scenario run as seen by one requestor."""
        missing = [k for k in ("scenarioId", "requestorId") if not id_map.get(k)]
        if missing:
            raise ValueError(f"id map is missing {', '.join(missing)}")
        return cls((str(id_map["scenarioId"]), str(id_map["requestorId"])))

    @staticmethod
    def _escape(component: str) -> str:
        return component.replace("\\", "\\\\").replace(CacheScope.SEPARATOR, "\\:")

    @property
    def prefix(self) -> str:
        return self.SEPARATOR.join(self._escape(c) for c in self.components)

    def __str__(self) -> str:
        return self.prefix


__all__ = ["CacheScope"]
