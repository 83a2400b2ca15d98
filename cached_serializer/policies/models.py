"""
Attribute caching policies.
"""

from dataclasses import dataclass, field, replace
from datetime import timedelta
from enum import Enum
from operator import attrgetter
from typing import Any, Callable, Iterable, Optional, Sequence, Tuple, Union

from shared.errors import ConfigurationError
from shared.logging import get_logger
from shared.metrics import CacheMetrics

Predicate = Callable[[Any], bool]
Compute = Callable[[Any], Any]
Expiry = Union[timedelta, int, float]

logger = get_logger("cached_serializer.policies")


class PolicyKind(str, Enum):
    """Declaration kinds."""
    COLUMNS = "columns"
    CONSTANT = "constant"
    VOLATILE = "volatile"
    COMPUTED = "computed"


def always_recompute(subject: Any) -> bool:
    """Predicate used by volatile attributes."""
    return True


def _coerce_expiry(name: str, expires_in: Optional[Expiry]) -> Optional[timedelta]:
    if expires_in is None:
        return None
    if isinstance(expires_in, bool) or not isinstance(expires_in, (timedelta, int, float)):
        raise ConfigurationError(
            f"expires_in for '{name}' must be a timedelta or a number of seconds",
            details={"attribute": name},
        )
    if not isinstance(expires_in, timedelta):
        expires_in = timedelta(seconds=expires_in)
    if expires_in <= timedelta(0):
        raise ConfigurationError(
            f"expires_in for '{name}' must be positive",
            details={"attribute": name},
        )
    return expires_in


def _coerce_predicates(name: str, recompute_if: Union[None, Predicate, Sequence[Predicate]]) -> Tuple[Predicate, ...]:
    if recompute_if is None:
        return ()
    predicates = (recompute_if,) if callable(recompute_if) else tuple(recompute_if)
    for predicate in predicates:
        if not callable(predicate):
            raise ConfigurationError(
                f"recompute_if for '{name}' must be callable",
                details={"attribute": name},
            )
    return predicates


def _unique(values: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(values))


@dataclass(frozen=True)
class AttributePolicy:
    """Caching rule for one output attribute.

    ``predicates`` force a recompute when any returns true. ``expires_in``
    bounds the age of a cached value. ``depends_on`` lists the subject
    fields whose committed changes evict the cached value.
    """

    name: str
    compute: Compute
    predicates: Tuple[Predicate, ...] = ()
    expires_in: Optional[timedelta] = None
    kind: PolicyKind = PolicyKind.CONSTANT
    depends_on: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def columns(cls, name: str) -> "AttributePolicy":
        return cls(name=name, compute=attrgetter(name), kind=PolicyKind.COLUMNS, depends_on=(name,))

    @classmethod
    def constant(cls, name: str, compute: Optional[Compute] = None) -> "AttributePolicy":
        return cls(name=name, compute=compute or attrgetter(name), kind=PolicyKind.CONSTANT)

    @classmethod
    def volatile(cls, name: str, compute: Optional[Compute] = None) -> "AttributePolicy":
        return cls(
            name=name,
            compute=compute or attrgetter(name),
            predicates=(always_recompute,),
            kind=PolicyKind.VOLATILE,
        )

    @classmethod
    def computed(
        cls,
        name: str,
        compute: Compute,
        columns: Sequence[str] = (),
        recompute_if: Union[None, Predicate, Sequence[Predicate]] = None,
        expires_in: Optional[Expiry] = None,
    ) -> "AttributePolicy":
        """Policy for a derived attribute.

        A computed attribute with neither dependent columns, a recompute
        predicate nor an expiry would be cached forever with no way to
        invalidate it, so it is rejected.
        """
        if isinstance(columns, str):
            columns = (columns,)
        if not columns and recompute_if is None and expires_in is None:
            raise ConfigurationError(
                f"Must provide columns, recompute_if, or expires_in to computed attribute '{name}'",
                details={"attribute": name},
            )
        if not callable(compute):
            raise ConfigurationError(
                f"computed attribute '{name}' requires a compute function",
                details={"attribute": name},
            )

        return cls(
            name=name,
            compute=compute,
            predicates=_coerce_predicates(name, recompute_if),
            expires_in=_coerce_expiry(name, expires_in),
            kind=PolicyKind.COMPUTED,
            depends_on=_unique(columns),
        )

    def should_recompute(self, subject: Any) -> bool:
        return any(predicate(subject) for predicate in self.predicates)

    def merged_with(self, newer: "AttributePolicy") -> "AttributePolicy":
        """Merge a redeclaration of the same attribute.

        Recompute predicates accumulate; ``compute`` and ``expires_in`` come
        from the newer declaration.
        """
        if newer.name != self.name:
            raise ConfigurationError(
                f"Cannot merge policy '{newer.name}' into '{self.name}'",
                details={"existing": self.name, "new": newer.name},
            )

        return replace(
            self,
            compute=newer.compute,
            predicates=self.predicates + newer.predicates,
            expires_in=newer.expires_in,
            kind=newer.kind,
            depends_on=_unique(self.depends_on + newer.depends_on),
        )

    def resolve(
        self,
        subject: Any,
        backend: Any,
        keys: Any,
        metrics: Optional[CacheMetrics] = None,
        serializer: str = "",
    ) -> Tuple[str, Any]:
        """Resolve the attribute for ``subject`` through ``backend``.

        Exceptions raised by ``compute`` propagate unchanged; the backend
        stores nothing in that case.
        """
        force = self.should_recompute(subject)
        key = keys.for_subject(subject, self.name)
        computed = []

        def compute():
            computed.append(True)
            if metrics is None:
                return self.compute(subject)
            with metrics.time_compute(serializer, self.name):
                return self.compute(subject)

        if force:
            logger.debug("Forced recompute", attribute=self.name, key=key)

        value = backend.fetch(key, ttl=self.expires_in, force=force, compute=compute)

        if metrics is not None:
            outcome = "forced" if force else ("computed" if computed else "cached")
            self._record_resolution(metrics, serializer, outcome)

        return self.name, value

    def _record_resolution(self, metrics: CacheMetrics, serializer: str, outcome: str) -> None:
        try:
            metrics.record_resolution(serializer, self.name, outcome)
        except Exception as exc:  # pragma: no cover - metrics failures should never break serialization
            logger.debug("Failed to record resolution metrics", attribute=self.name, error=str(exc))
