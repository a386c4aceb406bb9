"""
maestro.orchestration.event_bus - Choreography Event Bus
==========================================================

In-process publish/subscribe channel for ``ChoreographyEvent``s, with a
bounded history that supports replay by type, time range, agent, workflow
and correlation id.

Architecture:
    ┌──────────────┐   publish(event)   ┌──────────────────────────────┐
    │  Executor /   │ ────────────────→ │          EventBus            │
    │  Maestro      │                   │                              │
    └──────────────┘                    │  history: deque(maxlen=N)    │
                                        │  subscriptions: id → Sub     │
                                        └──────┬─────────┬─────────────┘
                                               │         │
                                   ┌───────────▼──┐  ┌───▼──────────┐
                                   │ Subscriber A │  │ Subscriber B │
                                   └──────────────┘  └──────────────┘

Delivery Rules:
    An event is delivered to every ACTIVE subscription whose type set
    contains the event's type. A subscription with an empty type set
    receives nothing. Optional ``agent_id`` and ``workflow_id`` narrow a
    subscription further: ``agent_id`` matches the event's source or
    target agent.

Failure Isolation:
    Callbacks run concurrently through ``asyncio.gather(...,
    return_exceptions=True)``. A callback that raises is logged and
    otherwise ignored: the event is still in history, other subscribers
    still receive it, and ``publish`` returns normally.

Ordering:
    History preserves publish order. The lock is held only while appending
    and snapshotting subscribers, never while callbacks run.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Awaitable, Callable, Iterable, Optional
from uuid import uuid4

import structlog
from pydantic import BaseModel, Field

from maestro.core.enums import EventType
from maestro.core.events import ChoreographyEvent
from maestro.core.models import EventFilter


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


# =============================================================================
# Type Aliases
# =============================================================================
# A subscriber callback is an async function that receives the event:
#
#     async def on_step(event: ChoreographyEvent) -> None:
#         print(event.type, event.payload)
# =============================================================================
EventCallback = Callable[[ChoreographyEvent], Awaitable[None]]


DEFAULT_BUFFER_SIZE = 10_000


class Subscription(BaseModel):
    """Handle returned by ``EventBus.subscribe``.

    Attributes:
        id: Subscription id, used for unsubscribe / pause / resume.
        event_types: Types delivered to this subscription.
        agent_id: Only events whose source or target is this agent.
        workflow_id: Only events of this workflow.
        active: Paused subscriptions receive nothing.
        callback: The async subscriber function.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    event_types: frozenset[EventType] = Field(default_factory=frozenset)
    agent_id: Optional[str] = None
    workflow_id: Optional[str] = None
    active: bool = True
    callback: EventCallback

    def matches(self, event: ChoreographyEvent) -> bool:
        """Whether ``event`` should be delivered to this subscription."""
        if not self.active or event.type not in self.event_types:
            return False
        if self.agent_id is not None and self.agent_id not in (
            event.source_agent,
            event.target_agent,
        ):
            return False
        if self.workflow_id is not None and event.workflow_id != self.workflow_id:
            return False
        return True


class EventBus:
    """Bounded-history, in-process event bus.

    Attributes:
        _history: Ring buffer of published events, oldest evicted first.
        _subscriptions: subscription_id → Subscription.
        _published_count: Events published since creation (not bounded).
        _lock: Protects history and subscription registry.

    Example:
        >>> bus = EventBus(buffer_size=1000)
        >>> sub = await bus.subscribe([EventType.WORKFLOW_COMPLETED], on_done)
        >>> await bus.publish(event)
        >>> bus.get_events_by_correlation(event.correlation_id)
    """

    def __init__(self, buffer_size: int = DEFAULT_BUFFER_SIZE) -> None:
        if buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")
        self._buffer_size = buffer_size
        self._history: deque[ChoreographyEvent] = deque(maxlen=buffer_size)
        self._subscriptions: dict[str, Subscription] = {}
        self._published_count: int = 0
        self._lock = asyncio.Lock()
        self._logger = logger.bind(component="event_bus")

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def buffer_size(self) -> int:
        """Maximum number of retained events."""
        return self._buffer_size

    @property
    def history_size(self) -> int:
        """Number of events currently retained."""
        return len(self._history)

    @property
    def published_count(self) -> int:
        """Total events published, including evicted ones."""
        return self._published_count

    @property
    def subscription_count(self) -> int:
        """Number of subscriptions, active or paused."""
        return len(self._subscriptions)

    # =========================================================================
    # Publish
    # =========================================================================

    async def publish(self, event: ChoreographyEvent) -> None:
        """Record ``event`` and deliver it to matching subscriptions.

        Never raises because of a subscriber: callback errors are logged
        per subscriber and swallowed.

        Args:
            event: The event to publish.
        """
        async with self._lock:
            self._history.append(event)
            self._published_count += 1
            targets = [s for s in self._subscriptions.values() if s.matches(event)]

        self._logger.debug(
            "event_published",
            event_id=event.id,
            event_type=event.type.value,
            correlation_id=event.correlation_id,
            subscriber_count=len(targets),
        )

        if not targets:
            return

        results = await asyncio.gather(
            *(self._invoke_callback(sub, event) for sub in targets),
            return_exceptions=True,
        )
        for sub, result in zip(targets, results):
            if isinstance(result, Exception):
                self._logger.error(
                    "subscriber_callback_error",
                    subscription_id=sub.id,
                    event_id=event.id,
                    event_type=event.type.value,
                    error=str(result),
                )

    async def _invoke_callback(
        self, subscription: Subscription, event: ChoreographyEvent
    ) -> None:
        """Invoke one subscriber, logging and re-raising its failure.

        Re-raising lets ``gather(return_exceptions=True)`` collect the
        error so ``publish`` can report which subscription failed.
        """
        try:
            await subscription.callback(event)
        except Exception as exc:
            self._logger.warning(
                "callback_invocation_error",
                subscription_id=subscription.id,
                event_type=event.type.value,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise

    # =========================================================================
    # Subscriptions
    # =========================================================================

    async def subscribe(
        self,
        event_types: Iterable[EventType],
        callback: EventCallback,
        *,
        agent_id: Optional[str] = None,
        workflow_id: Optional[str] = None,
    ) -> Subscription:
        """Register ``callback`` for the given event types.

        Args:
            event_types: Types to deliver. Empty means nothing is delivered.
            callback: Async function receiving each matching event.
            agent_id: Only events whose source or target is this agent.
            workflow_id: Only events belonging to this workflow.

        Returns:
            The Subscription handle.
        """
        subscription = Subscription(
            event_types=frozenset(EventType(t) for t in event_types),
            agent_id=agent_id,
            workflow_id=workflow_id,
            callback=callback,
        )
        async with self._lock:
            self._subscriptions[subscription.id] = subscription

        self._logger.debug(
            "subscription_added",
            subscription_id=subscription.id,
            event_types=sorted(t.value for t in subscription.event_types),
            agent_id=agent_id,
            workflow_id=workflow_id,
        )
        return subscription

    async def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a subscription. Idempotent.

        Returns:
            True if a subscription was removed.
        """
        async with self._lock:
            removed = self._subscriptions.pop(subscription_id, None)
        if removed is not None:
            self._logger.debug("subscription_removed", subscription_id=subscription_id)
        return removed is not None

    async def pause_subscription(self, subscription_id: str) -> bool:
        """Stop delivering to a subscription without removing it."""
        return await self._set_active(subscription_id, False)

    async def resume_subscription(self, subscription_id: str) -> bool:
        """Resume delivery to a paused subscription."""
        return await self._set_active(subscription_id, True)

    async def _set_active(self, subscription_id: str, active: bool) -> bool:
        async with self._lock:
            current = self._subscriptions.get(subscription_id)
            if current is None:
                return False
            self._subscriptions[subscription_id] = current.model_copy(
                update={"active": active}
            )
        return True

    def get_subscription(self, subscription_id: str) -> Optional[Subscription]:
        """Look up a subscription by id."""
        return self._subscriptions.get(subscription_id)

    def list_subscriptions(self, agent_id: Optional[str] = None) -> list[Subscription]:
        """All subscriptions, or those registered for ``agent_id``."""
        subs = list(self._subscriptions.values())
        if agent_id is not None:
            subs = [s for s in subs if s.agent_id == agent_id]
        return subs

    # =========================================================================
    # History
    # =========================================================================

    def get_event_history(
        self, event_filter: Optional[EventFilter] = None
    ) -> list[ChoreographyEvent]:
        """Retained events in publish order, optionally filtered.

        Args:
            event_filter: Types, inclusive time range, source agent,
                workflow id, and a trailing ``limit`` (last N matches).

        Returns:
            Matching events, oldest first.
        """
        events = list(self._history)
        if event_filter is None:
            return events

        if event_filter.since is not None:
            events = [e for e in events if e.timestamp >= event_filter.since]
        if event_filter.until is not None:
            events = [e for e in events if e.timestamp <= event_filter.until]
        if event_filter.event_types:
            wanted = set(event_filter.event_types)
            events = [e for e in events if e.type in wanted]
        if event_filter.source_agent is not None:
            events = [e for e in events if e.source_agent == event_filter.source_agent]
        if event_filter.workflow_id is not None:
            events = [e for e in events if e.workflow_id == event_filter.workflow_id]
        if event_filter.limit is not None:
            events = events[-event_filter.limit:]
        return events

    def get_events_by_correlation(self, correlation_id: str) -> list[ChoreographyEvent]:
        """Retained events sharing ``correlation_id``, in publish order."""
        return [e for e in self._history if e.correlation_id == correlation_id]

    async def resize(self, buffer_size: int) -> None:
        """Change the history capacity, keeping the newest events."""
        if buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")
        async with self._lock:
            self._history = deque(self._history, maxlen=buffer_size)
            self._buffer_size = buffer_size
        self._logger.info("event_bus_resized", buffer_size=buffer_size)

    async def clear(self) -> None:
        """Drop all history and subscriptions."""
        async with self._lock:
            self._history.clear()
            self._subscriptions.clear()
        self._logger.info("event_bus_cleared")
