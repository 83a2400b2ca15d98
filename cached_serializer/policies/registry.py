"""
Ordered registry of attribute policies.
"""

import threading
from typing import Any, Dict, Iterator, List, Optional, Tuple

from shared.errors import ConfigurationError
from shared.logging import get_logger
from shared.metrics import CacheMetrics
from .models import AttributePolicy


class PolicyRegistry:
    """Name-keyed policies in declaration order.

    Registering a name that already exists merges into the existing slot,
    which keeps its output position.
    """

    def __init__(self, name: str = "serializer"):
        self.name = name
        self.logger = get_logger("cached_serializer.registry")
        self._policies: Dict[str, AttributePolicy] = {}
        self._lock = threading.RLock()
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Reject further registrations."""
        with self._lock:
            self._frozen = True

    def register(self, policy: AttributePolicy) -> AttributePolicy:
        """Add ``policy``, or merge it into the policy already registered under its name."""
        with self._lock:
            if self._frozen:
                raise ConfigurationError(
                    f"Registry '{self.name}' is frozen; cannot register '{policy.name}'",
                    details={"registry": self.name, "attribute": policy.name},
                )

            existing = self._policies.get(policy.name)
            if existing is None:
                self._policies[policy.name] = policy
                self.logger.info(
                    "Policy registered",
                    registry=self.name,
                    attribute=policy.name,
                    kind=policy.kind.value,
                )
                return policy

            merged = existing.merged_with(policy)
            self._policies[policy.name] = merged
            self.logger.info(
                "Policy merged",
                registry=self.name,
                attribute=policy.name,
                kind=merged.kind.value,
                predicates=len(merged.predicates),
                expires_in=merged.expires_in.total_seconds() if merged.expires_in else None,
            )
            return merged

    def replace(self, policy: AttributePolicy) -> AttributePolicy:
        """Store ``policy`` as is, keeping the slot of any policy of the same name."""
        with self._lock:
            if self._frozen:
                raise ConfigurationError(
                    f"Registry '{self.name}' is frozen; cannot replace '{policy.name}'",
                    details={"registry": self.name, "attribute": policy.name},
                )

            self._policies[policy.name] = policy
            self.logger.info("Policy replaced", registry=self.name, attribute=policy.name, kind=policy.kind.value)
            return policy

    def resolve_all(
        self,
        subject: Any,
        backend: Any,
        keys: Any,
        metrics: Optional[CacheMetrics] = None,
    ) -> Dict[str, Any]:
        """Resolve every policy in registration order."""
        result: Dict[str, Any] = {}
        for policy in self.snapshot():
            name, value = policy.resolve(subject, backend, keys, metrics=metrics, serializer=self.name)
            result[name] = value
        return result

    def snapshot(self) -> Tuple[AttributePolicy, ...]:
        with self._lock:
            return tuple(self._policies.values())

    def get(self, name: str) -> Optional[AttributePolicy]:
        with self._lock:
            return self._policies.get(name)

    def names(self) -> List[str]:
        with self._lock:
            return list(self._policies)

    def __iter__(self) -> Iterator[AttributePolicy]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        with self._lock:
            return len(self._policies)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._policies

    def __repr__(self) -> str:
        return f"PolicyRegistry(name={self.name!r}, attributes={self.names()!r})"
