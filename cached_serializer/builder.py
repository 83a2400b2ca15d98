"""
Declaration API for cached serializers.

Example::

    users = SerializerBuilder("UserSerializer", backend=backend, subject_class=User)

    # Cached until the column changes on the record
    users.columns("email", "phone")

    # Cached until first_name or last_name changes
    @users.computed(columns=["first_name", "last_name"])
    def full_name(user):
        return f"{user.first_name} {user.last_name}"

    # Recomputed whenever the predicate holds at serialization time
    @users.computed(recompute_if=lambda u: u.last_seen_at > week_ago)
    def active(user):
        return user.purchases_since(week_ago) > 0

    # Cached for a day after the last computation
    @users.computed(expires_in=timedelta(days=1))
    def purchase_count(user):
        return user.purchases.count()

    UserSerializer = users.build()
    UserSerializer.serializer(user).to_json()
"""

import re
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, Union

from shared.config import CacheSettings, get_settings
from shared.errors import ConfigurationError, SubjectResolutionError
from shared.logging import get_logger
from shared.metrics import CacheMetrics
from .caching.keys import CacheKeyBuilder
from .invalidation.feed import change_feed_for
from .invalidation.wiring import InvalidationWiring
from .policies.models import AttributePolicy, Compute, Expiry, Predicate
from .policies.registry import PolicyRegistry
from .serializer import Serializer, SerializerDefinition

_SERIALIZER_SUFFIX = re.compile(r"[Ss]erializer$")


def resolve_subject_type(serializer_name: str, candidates: Mapping[str, type]) -> type:
    """Derive the subject type from a serializer name (``UserSerializer`` -> ``User``)."""
    base = _SERIALIZER_SUFFIX.sub("", serializer_name)
    subject_type = candidates.get(base) if base else None
    if subject_type is None:
        raise SubjectResolutionError(
            f"Cannot derive a subject type for '{serializer_name}' (looked for '{base}'); "
            "declare it explicitly with subject_class(...)",
            details={"serializer": serializer_name, "candidate": base},
        )
    return subject_type


def _as_type_table(subject_types: Union[None, Mapping[str, type], Iterable[type]]) -> dict:
    if subject_types is None:
        return {}
    if isinstance(subject_types, Mapping):
        return dict(subject_types)
    return {subject_type.__name__: subject_type for subject_type in subject_types}


class SerializerBuilder:
    """Builds the policy registry and invalidation wiring of one serializer."""

    def __init__(
        self,
        name: str,
        *,
        backend: Any,
        subject_class: Union[None, type, str] = None,
        subject_types: Union[None, Mapping[str, type], Iterable[type]] = None,
        notifier: Any = None,
        keys: Optional[CacheKeyBuilder] = None,
        settings: Optional[CacheSettings] = None,
        metrics: Optional[CacheMetrics] = None,
    ):
        self.name = name
        self.backend = backend
        self.settings = settings or get_settings()
        self.keys = keys or CacheKeyBuilder.from_settings(self.settings)
        self.metrics = metrics
        self.logger = get_logger("cached_serializer.builder")

        self.registry = PolicyRegistry(name)
        self.wiring = InvalidationWiring(backend, self.keys, metrics)

        self._subject_types = _as_type_table(subject_types)
        self._subject_type: Optional[type] = None
        self._notifier = notifier

        if subject_class is not None:
            self.subject_class(subject_class)

    # Subject type

    def subject_class(self, subject_class: Union[type, str]) -> type:
        """Declare the subject type explicitly, by type or by registered name."""
        if isinstance(subject_class, str):
            resolved = self._subject_types.get(subject_class)
            if resolved is None:
                raise SubjectResolutionError(
                    f"Unknown subject type '{subject_class}' for {self.name}",
                    details={"serializer": self.name, "subject_class": subject_class},
                )
            subject_class = resolved

        if not isinstance(subject_class, type):
            raise ConfigurationError(
                f"subject_class for {self.name} must be a type or a type name",
                details={"serializer": self.name},
            )

        if self._subject_type is not None and self._subject_type is not subject_class and self.wiring.wired_pairs:
            raise ConfigurationError(
                f"{self.name} already wired invalidation hooks for {self._subject_type.__name__}",
                details={"serializer": self.name, "subject_class": subject_class.__name__},
            )

        self._subject_type = subject_class
        return subject_class

    @property
    def subject_type(self) -> type:
        """Declared subject type, else the one derived from the serializer name."""
        if self._subject_type is None:
            self._subject_type = resolve_subject_type(self.name, self._subject_types)
            self.logger.info(
                "Derived subject type",
                serializer=self.name,
                subject_type=self._subject_type.__name__,
            )
        return self._subject_type

    def _notifier_for_wiring(self) -> Any:
        if self._notifier is not None:
            return self._notifier

        feed = change_feed_for(self.subject_type, self.settings.change_feed_attribute)
        if feed is None:
            raise ConfigurationError(
                f"{self.subject_type.__name__} exposes no '{self.settings.change_feed_attribute}'; "
                f"pass notifier= to {self.name} to declare column dependencies",
                details={"serializer": self.name, "subject_type": self.subject_type.__name__},
            )
        return feed

    # Declarations

    def columns(self, *names: str) -> None:
        """Attributes read straight from the subject, evicted when the field changes."""
        notifier = self._notifier_for_wiring()
        for name in names:
            self.registry.register(AttributePolicy.columns(name))
            self.wiring.wire(notifier, name, name)

    def constant(self, *names: Any, compute: Optional[Compute] = None) -> Any:
        """Attributes cached forever.

        ``constant("a", "b")`` reads the attributes off the subject. Used bare
        as a decorator the function name is the attribute name;
        ``@constant("a")`` registers the decorated function under ``a``.
        """
        return self._declare(AttributePolicy.constant, names, compute)

    def volatile(self, *names: Any, compute: Optional[Compute] = None) -> Any:
        """Attributes recomputed on every serialization. Same call forms as :meth:`constant`."""
        return self._declare(AttributePolicy.volatile, names, compute)

    def _declare(self, factory: Callable[..., AttributePolicy], names: Sequence[Any], compute: Optional[Compute]) -> Any:
        if len(names) == 1 and callable(names[0]) and compute is None:
            function = names[0]
            self.registry.register(factory(function.__name__, function))
            return function

        if not names or not all(isinstance(name, str) for name in names):
            raise ConfigurationError(
                f"Attribute names for {self.name} must be strings",
                details={"serializer": self.name},
            )

        previous = {name: self.registry.get(name) for name in names}
        for name in names:
            self.registry.register(factory(name, compute))
        if compute is not None:
            return None

        # Used as @constant("a"): swap the attribute readers for the function
        def declare(function: Compute) -> Compute:
            for name in names:
                policy = factory(name, function)
                if previous[name] is not None:
                    policy = previous[name].merged_with(policy)
                self.registry.replace(policy)
            return function

        return declare

    def computed(
        self,
        name: Union[None, str, Compute] = None,
        compute: Optional[Compute] = None,
        *,
        columns: Sequence[str] = (),
        recompute_if: Union[None, Predicate, Sequence[Predicate]] = None,
        expires_in: Optional[Expiry] = None,
    ) -> Any:
        """Derived attribute; needs at least one of columns, recompute_if or expires_in.

        Without ``compute`` this returns a decorator; the attribute name
        defaults to the decorated function's name.
        """
        if callable(name):
            name, compute = None, name
        if isinstance(columns, str):
            columns = (columns,)
        if not columns and recompute_if is None and expires_in is None:
            raise ConfigurationError(
                f"Must provide columns, recompute_if, or expires_in to computed attribute "
                f"'{name or getattr(compute, '__name__', '?')}' of {self.name}",
                details={"serializer": self.name, "attribute": name},
            )

        def declare(function: Compute) -> Compute:
            attribute = name or function.__name__
            policy = AttributePolicy.computed(
                attribute,
                function,
                columns=columns,
                recompute_if=recompute_if,
                expires_in=expires_in,
            )
            notifier = self._notifier_for_wiring() if policy.depends_on else None
            self.registry.register(policy)
            for column in policy.depends_on:
                self.wiring.wire(notifier, attribute, column)
            return function

        if compute is not None:
            declare(compute)
            return None
        return declare

    # Products

    def build(self, freeze: bool = False) -> SerializerDefinition:
        """Definition sharing this builder's registry; ``freeze`` closes it to new declarations."""
        if freeze:
            self.registry.freeze()
        return SerializerDefinition(
            name=self.name,
            subject_type=self.subject_type,
            registry=self.registry,
            backend=self.backend,
            keys=self.keys,
            wiring=self.wiring,
            metrics=self.metrics,
        )

    def serializer(self, subject: Any) -> Serializer:
        return self.build().serializer(subject)
