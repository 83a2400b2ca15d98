"""
SQLAlchemy change feed.

Collects per-instance column changes while a session flushes and publishes
them only once the transaction commits, so cached attributes are evicted
for durable changes only. Rolled back changes are discarded.

Identity is taken from the instance's identity key when it has one (single
column primary keys collapse to the bare value), else from
``identity_attribute`` of a freshly inserted row.
"""

from typing import Any, List

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from ..invalidation.feed import ChangeEvent, ChangeFeed


class SQLAlchemyChangeFeed(ChangeFeed):
    """Change feed for one mapped model, driven by ORM session events.

    ``target`` is anything SQLAlchemy accepts for session events: the
    ``Session`` class (all sessions), a ``sessionmaker`` or one session.
    """

    def __init__(self, model: type, target: Any = Session, identity_attribute: str = "id"):
        super().__init__(identity_attribute)
        self.model = model
        self.target = target
        self._info_key = f"cached_serializer.pending.{id(self)}"
        self._listeners = (
            ("after_flush", self._collect),
            ("after_commit", self._publish_pending),
            ("after_rollback", self._discard_pending),
        )
        for name, listener in self._listeners:
            event.listen(target, name, listener)

    def remove(self) -> None:
        """Detach the session listeners."""
        for name, listener in self._listeners:
            if event.contains(self.target, name, listener):
                event.remove(self.target, name, listener)

    def _collect(self, session: Session, flush_context: Any) -> None:
        # new/dirty and attribute history still reflect the pre-flush state here
        pending: List[ChangeEvent] = session.info.setdefault(self._info_key, [])
        for instance in list(session.new) + list(session.dirty):
            if not isinstance(instance, self.model):
                continue

            state = inspect(instance)
            changed = frozenset(attr.key for attr in state.attrs if attr.history.has_changes())
            if not changed:
                continue

            pending.append(ChangeEvent(
                subject_type=type(instance),
                identity=self._identity_of(state, instance),
                changed_fields=changed,
            ))

    def _identity_of(self, state: Any, instance: Any) -> Any:
        if state.key is not None:
            identity = state.identity
            return identity[0] if len(identity) == 1 else identity
        return getattr(instance, self.identity_attribute, None)

    def _publish_pending(self, session: Session) -> None:
        pending = session.info.pop(self._info_key, None)
        if not pending:
            return

        self.logger.debug("Publishing committed changes", model=self.model.__name__, events=len(pending))
        for change in pending:
            self.dispatch(change)

    def _discard_pending(self, session: Session) -> None:
        pending = session.info.pop(self._info_key, None)
        if pending:
            self.logger.debug("Discarding rolled back changes", model=self.model.__name__, events=len(pending))
