"""
Cache key derivation for serialized attributes.
"""

import re
from typing import Any, Optional

from shared.config import CacheSettings
from shared.errors import SubjectResolutionError


_ACRONYM_BOUNDARY = re.compile(r"([A-Z\d]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z\d])([A-Z])")


def subject_type_name(subject_type: type) -> str:
    """Underscored type name used in keys (``UserProfile`` -> ``user_profile``)."""
    name = _ACRONYM_BOUNDARY.sub(r"\1_\2", subject_type.__name__)
    name = _WORD_BOUNDARY.sub(r"\1_\2", name)
    return name.lower()


class CacheKeyBuilder:
    """Builds ``namespace:type:identity:attribute`` keys."""

    def __init__(self, namespace: str = "cached_serializer", identity_attribute: str = "id"):
        self.namespace = namespace
        self.identity_attribute = identity_attribute

    @classmethod
    def from_settings(cls, settings: CacheSettings) -> "CacheKeyBuilder":
        return cls(namespace=settings.namespace, identity_attribute=settings.identity_attribute)

    def build(self, type_name: str, identity: Any, attribute: str) -> str:
        return f"{self.namespace}:{type_name}:{identity}:{attribute}"

    def identity_of(self, subject: Any) -> Any:
        """Stable identity of ``subject``; unsaved subjects have none."""
        identity: Optional[Any] = getattr(subject, self.identity_attribute, None)
        if identity is None:
            raise SubjectResolutionError(
                f"{type(subject).__name__} has no '{self.identity_attribute}'; "
                "only subjects with a stable identity can be cached",
                details={"identity_attribute": self.identity_attribute},
            )
        return identity

    def for_subject(self, subject: Any, attribute: str) -> str:
        return self.build(subject_type_name(type(subject)), self.identity_of(subject), attribute)

    def __repr__(self) -> str:
        return f"CacheKeyBuilder(namespace={self.namespace!r}, identity_attribute={self.identity_attribute!r})"
