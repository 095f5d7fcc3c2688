"""Drives the sync coordinator from identity transitions."""

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field

from dinnerhelp_sync.domain.identity import Identity
from dinnerhelp_sync.services.auth import AuthService, IdentityProvider, Unsubscribe
from dinnerhelp_sync.services.sync import SyncCoordinator, SyncState

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityChanged:
    """The provider reported a signed-in identity, or None after sign-out."""

    identity: Identity | None


@dataclass(frozen=True)
class SyncToggled:
    """Cloud sync was switched on or off."""

    enabled: bool


@dataclass(frozen=True)
class RefreshRequested:
    """The partition should be resolved and pulled again."""


SessionEvent = IdentityChanged | SyncToggled | RefreshRequested


@dataclass
class SessionLifecycleController:
    """Single consumer of session events, handled strictly in arrival order.

    The controller registers with the identity provider once. Provider
    callbacks only enqueue events; a single task applies them to the
    coordinator so that sign-in, sign-out and account switches never overlap.
    """

    provider: IdentityProvider
    coordinator: SyncCoordinator
    auth: AuthService
    _queue: asyncio.Queue[SessionEvent] = field(
        default_factory=asyncio.Queue, init=False
    )
    _task: asyncio.Task[None] | None = field(default=None, init=False)
    _unsubscribe: Unsubscribe | None = field(default=None, init=False)

    @property
    def running(self) -> bool:
        """Return whether the event consumer is running."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start consuming events and register with the identity provider."""
        if self._task is not None:
            return
        self._task = asyncio.get_running_loop().create_task(self._consume())
        self._unsubscribe = self.provider.on_identity_change(self.identity_changed)

    async def stop(self) -> None:
        """Unregister, stop the consumer and end any sync session."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self.coordinator.stop()

    def identity_changed(self, identity: Identity | None) -> None:
        """Queue an identity transition."""
        self._queue.put_nowait(IdentityChanged(identity))

    def set_sync_enabled(self, enabled: bool) -> None:
        """Queue a sync preference change."""
        self._queue.put_nowait(SyncToggled(enabled))

    def request_refresh(self) -> None:
        """Queue a partition refresh."""
        self._queue.put_nowait(RefreshRequested())

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""
        await self._queue.join()

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._handle(event)
            except Exception:
                _logger.exception("Handling %s failed", event)
            finally:
                self._queue.task_done()

    async def _handle(self, event: SessionEvent) -> None:
        if isinstance(event, IdentityChanged):
            await self._on_identity(event.identity)
        elif isinstance(event, SyncToggled):
            await self._on_sync_toggled(event.enabled)
        elif self.coordinator.state is not SyncState.IDLE:
            await self.coordinator.refresh()

    async def _on_identity(self, identity: Identity | None) -> None:
        self.auth.observe_identity(identity)
        if identity is None:
            _logger.info("Signed out, stopping sync")
            await self.coordinator.stop()
            return
        current = self.coordinator.identity
        if (
            current is not None
            and current.id == identity.id
            and self.coordinator.state is not SyncState.IDLE
        ):
            _logger.debug("Ignoring repeated sign-in for %s", identity.id)
            return
        if not self.auth.sync_enabled:
            _logger.info("Sync disabled, not starting for %s", identity.id)
            return
        await self.coordinator.start(identity)

    async def _on_sync_toggled(self, enabled: bool) -> None:
        self.auth.set_sync_enabled(enabled)
        if not enabled:
            await self.coordinator.stop()
            return
        user = self.auth.user
        if user is not None and self.coordinator.state is SyncState.IDLE:
            await self.coordinator.start(user)
