"""
Change notification channel exposed by subject types.

A host publishes to the feed after a change to a subject has been durably
committed; invalidation hooks subscribe to it at load time.
"""

import threading
from dataclasses import dataclass
from typing import Any, Callable, FrozenSet, Iterable, List, Optional

from shared.logging import get_logger


@dataclass(frozen=True)
class ChangeEvent:
    """Fields of one subject that changed in a committed change-set."""
    subject_type: type
    identity: Any
    changed_fields: FrozenSet[str]

    def changed(self, field: str) -> bool:
        return field in self.changed_fields


ChangeHook = Callable[[ChangeEvent], None]


class ChangeFeed:
    """Subscription point for post-commit change events."""

    def __init__(self, identity_attribute: str = "id"):
        self.identity_attribute = identity_attribute
        self.logger = get_logger("cached_serializer.invalidation.feed")
        self._hooks: List[ChangeHook] = []
        self._lock = threading.Lock()

    def subscribe(self, hook: ChangeHook) -> Callable[[], None]:
        """Subscribe ``hook``; returns a callable that unsubscribes it."""
        with self._lock:
            self._hooks.append(hook)

        def unsubscribe() -> None:
            with self._lock:
                if hook in self._hooks:
                    self._hooks.remove(hook)

        return unsubscribe

    def publish(self, subject: Any, changed_fields: Iterable[str]) -> ChangeEvent:
        """Announce that ``changed_fields`` of ``subject`` were committed."""
        event = ChangeEvent(
            subject_type=type(subject),
            identity=getattr(subject, self.identity_attribute, None),
            changed_fields=frozenset(changed_fields),
        )
        self.dispatch(event)
        return event

    def dispatch(self, event: ChangeEvent) -> None:
        """Invoke hooks in subscription order; hook errors propagate."""
        if not event.changed_fields:
            return

        with self._lock:
            hooks = list(self._hooks)

        self.logger.debug(
            "Dispatching change event",
            subject_type=event.subject_type.__name__,
            identity=str(event.identity),
            fields=sorted(event.changed_fields),
            hooks=len(hooks),
        )
        for hook in hooks:
            hook(event)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._hooks)


def change_feed_for(subject_type: type, attribute: str = "change_feed") -> Optional[ChangeFeed]:
    """Feed a subject type exposes as a class attribute, if any."""
    feed = getattr(subject_type, attribute, None)
    if feed is None or not callable(getattr(feed, "subscribe", None)):
        return None
    return feed
