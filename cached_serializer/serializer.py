"""
Serializer bound to one subject.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from shared.errors import ConfigurationError, SubjectTypeMismatchError
from shared.logging import get_logger, reset_serialization_context, set_serialization_context
from shared.metrics import CacheMetrics
from .caching.codec import json_default
from .caching.keys import CacheKeyBuilder
from .invalidation.wiring import InvalidationWiring
from .policies.registry import PolicyRegistry

logger = get_logger("cached_serializer.serializer")


@dataclass
class SerializerDefinition:
    """Everything a serializer needs, shared by reference between instances."""
    name: str
    subject_type: type
    registry: PolicyRegistry
    backend: Any
    keys: CacheKeyBuilder
    wiring: InvalidationWiring
    metrics: Optional[CacheMetrics] = None

    def serializer(self, subject: Any) -> "Serializer":
        return Serializer(subject, self)

    def serialize(self, subject: Any) -> Dict[str, Any]:
        return Serializer(subject, self).to_dict()


class Serializer:
    """Produces the cached attribute mapping of one subject."""

    def __init__(self, subject: Any, definition: SerializerDefinition):
        if not isinstance(subject, definition.subject_type):
            raise SubjectTypeMismatchError(
                definition.subject_type,
                type(subject),
                details={"serializer": definition.name},
            )
        self.subject = subject
        self.definition = definition

    def to_dict(self) -> Dict[str, Any]:
        """Resolve every declared attribute, in declaration order."""
        definition = self.definition
        tokens = set_serialization_context(
            definition.name,
            getattr(self.subject, definition.keys.identity_attribute, None),
        )
        try:
            return definition.registry.resolve_all(
                self.subject,
                definition.backend,
                definition.keys,
                metrics=definition.metrics,
            )
        finally:
            reset_serialization_context(tokens)

    def as_json(self) -> Dict[str, Any]:
        return self.to_dict()

    def to_json(self, **dumps_kwargs) -> str:
        dumps_kwargs.setdefault("default", json_default)
        return json.dumps(self.to_dict(), **dumps_kwargs)

    def invalidate(self, *attributes: str) -> List[str]:
        """Evict cached values of ``attributes`` (all declared ones when empty) for this subject."""
        definition = self.definition
        names = list(attributes) or definition.registry.names()
        unknown = [name for name in names if name not in definition.registry]
        if unknown:
            raise ConfigurationError(
                f"Unknown attributes for {definition.name}: {', '.join(unknown)}",
                details={"serializer": definition.name, "attributes": unknown},
            )

        for name in names:
            definition.backend.delete(definition.keys.for_subject(self.subject, name))

        logger.info("Invalidated cached attributes", serializer=definition.name, attributes=names)
        return names

    def __repr__(self) -> str:
        return f"<{self.definition.name} subject={self.subject!r}>"


def serialize_many(subjects: Iterable[Any], definition: SerializerDefinition) -> List[Dict[str, Any]]:
    """Serialize each subject with ``definition``."""
    return [definition.serialize(subject) for subject in subjects]
