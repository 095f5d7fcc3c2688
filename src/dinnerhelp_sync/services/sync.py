"""Sync coordinator between the local domain stores and the remote partition."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from functools import partial
from typing import Protocol

from dinnerhelp_sync.domain.errors import (
    ResolutionError,
    TransientReadError,
    TransientWriteError,
)
from dinnerhelp_sync.domain.identity import Identity, PartitionKey
from dinnerhelp_sync.domain.snapshots import SnapshotPatch, SyncField, SyncSnapshot
from dinnerhelp_sync.services.debounce import PushScheduler
from dinnerhelp_sync.services.households import HouseholdResolver
from dinnerhelp_sync.services.merge import merge_snapshot
from dinnerhelp_sync.services.stores import DomainStores

_logger = logging.getLogger(__name__)

SnapshotListener = Callable[[SyncSnapshot], None]
LastSyncedListener = Callable[[datetime | None], None]


class Subscription(Protocol):
    """Live registration against one partition."""

    async def close(self) -> None:
        """Stop deliveries; safe to call more than once."""


class RemoteDataGateway(Protocol):
    """Per-partition document access on the remote store."""

    async def read(self, partition: PartitionKey) -> SyncSnapshot | None:
        """Return the partition's snapshot, or None if it was never written."""

    async def write(self, partition: PartitionKey, patch: SnapshotPatch) -> datetime:
        """Merge the patch's regions into the partition and return its timestamp."""

    async def subscribe(
        self, partition: PartitionKey, on_change: SnapshotListener
    ) -> Subscription:
        """Deliver the current snapshot now and again on every remote change."""


class SyncState(StrEnum):
    """Lifecycle of a sync session."""

    IDLE = "idle"
    RESOLVING = "resolving"
    PULLING = "pulling"
    LIVE = "live"


@dataclass(frozen=True)
class SyncStatus:
    """Point-in-time view of the coordinator."""

    state: SyncState
    partition: PartitionKey | None
    last_synced_at: datetime | None
    last_error: str | None
    pending: frozenset[SyncField]


@dataclass
class SyncCoordinator:
    """Pulls on sign-in, pushes local edits and merges remote deliveries.

    Each session gets a generation number. Deliveries and pull results that
    belong to an older generation are dropped, so a torn-down subscription
    can never merge into the next session's partition.
    """

    stores: DomainStores
    gateway: RemoteDataGateway
    resolver: HouseholdResolver
    push_debounce_seconds: float = 2.0
    on_last_synced: LastSyncedListener | None = None
    state: SyncState = field(default=SyncState.IDLE, init=False)
    partition: PartitionKey | None = field(default=None, init=False)
    last_synced_at: datetime | None = field(default=None, init=False)
    last_error: str | None = field(default=None, init=False)
    _identity: Identity | None = field(default=None, init=False)
    _generation: int = field(default=0, init=False)
    _subscription: Subscription | None = field(default=None, init=False)
    _pull: tuple[int, asyncio.Task[None]] | None = field(default=None, init=False)
    _deferred: set[SyncField] = field(default_factory=set, init=False)
    _scheduler: PushScheduler = field(init=False)

    def __post_init__(self) -> None:
        self._scheduler = PushScheduler(self._push_field, self.push_debounce_seconds)
        self.stores.attach_push_hook(self.notify_local_change)

    @property
    def identity(self) -> Identity | None:
        """Return the identity of the current session."""
        return self._identity

    def status(self) -> SyncStatus:
        """Return the current state, partition and sync markers."""
        return SyncStatus(
            state=self.state,
            partition=self.partition,
            last_synced_at=self.last_synced_at,
            last_error=self.last_error,
            pending=self._scheduler.pending() | frozenset(self._deferred),
        )

    async def start(self, identity: Identity) -> None:
        """Begin a session: resolve the partition, pull, then go live.

        Calling this while a session is active tears that session down first,
        closing its subscription before the new partition is resolved. Edits
        deferred by a previous session only carry over for the same account.
        """
        previous = self._identity
        if self.state is not SyncState.IDLE:
            await self._detach()
        if previous is None or previous.id != identity.id:
            self._deferred.clear()
        self._identity = identity
        self._generation += 1
        generation = self._generation
        self.state = SyncState.RESOLVING
        try:
            partition = await self.resolver.resolve(identity)
        except ResolutionError as exc:
            _logger.warning("Falling back to the personal partition: %s", exc)
            partition = self.resolver.use_personal_fallback(identity)
        if generation != self._generation:
            return
        self.partition = partition
        self.state = SyncState.PULLING
        await self._pull_once(generation, initial=True)
        if generation != self._generation:
            return
        await self._go_live(generation)

    async def refresh(self) -> None:
        """Re-resolve the partition and pull again for the current identity."""
        identity = self._identity
        if identity is None:
            return
        self.resolver.invalidate()
        await self.start(identity)

    async def stop(self) -> None:
        """End the session; local store content is kept."""
        if self.state is not SyncState.IDLE:
            await self._detach()
        self._deferred.clear()
        self.resolver.invalidate()
        self._identity = None
        self.state = SyncState.IDLE
        self._set_last_synced(None)

    async def pull(self) -> None:
        """Read the partition and merge it, joining a pull already running."""
        if self.state is not SyncState.LIVE:
            return
        await self._pull_once(self._generation)

    async def push_all(self) -> bool:
        """Write every region's current value to the partition now."""
        partition = self.partition
        if self.state is not SyncState.LIVE or partition is None:
            return False
        return await self._write(partition, self.stores.aggregate())

    async def flush_pushes(self) -> None:
        """Run scheduled pushes now and wait for them."""
        await self._scheduler.flush()

    def notify_local_change(self, sync_field: SyncField) -> None:
        """Push hook handed to every domain store."""
        if self.state is SyncState.IDLE:
            return
        if self.state is not SyncState.LIVE:
            self._deferred.add(sync_field)
            return
        self._scheduler.request(sync_field)

    async def _detach(self) -> None:
        self._generation += 1
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            await subscription.close()
        if self.state is SyncState.LIVE:
            await self._scheduler.flush()
        else:
            self._deferred |= self._scheduler.cancel()
        self.partition = None

    async def _pull_once(self, generation: int, initial: bool = False) -> None:
        running = self._pull
        if running is None or running[0] != generation or running[1].done():
            task = asyncio.get_running_loop().create_task(
                self._run_pull(generation, initial)
            )
            running = (generation, task)
            self._pull = running
        await asyncio.shield(running[1])

    async def _run_pull(self, generation: int, initial: bool) -> None:
        partition = self.partition
        if partition is None:
            return
        try:
            snapshot = await self.gateway.read(partition)
        except TransientReadError as exc:
            _logger.warning("Pull from %s failed: %s", partition, exc)
            self.last_error = str(exc)
            if not initial:
                return
            snapshot = None
        if generation != self._generation:
            _logger.debug("Discarding pull result for %s", partition)
            return
        if snapshot is None:
            _logger.info("No remote copy for %s, pushing local data", partition)
            await self._write(partition, self.stores.aggregate())
            return
        self._apply(snapshot)

    async def _go_live(self, generation: int) -> None:
        partition = self.partition
        if partition is None:
            return
        self.state = SyncState.LIVE
        previous, self._subscription = self._subscription, None
        if previous is not None:
            await previous.close()
        try:
            subscription = await self.gateway.subscribe(
                partition, partial(self._on_remote_change, generation)
            )
        except TransientReadError as exc:
            _logger.warning("Subscribing to %s failed: %s", partition, exc)
            self.last_error = str(exc)
            subscription = None
        if generation != self._generation:
            if subscription is not None:
                await subscription.close()
            return
        self._subscription = subscription
        deferred, self._deferred = self._deferred, set()
        for sync_field in sorted(deferred):
            self._scheduler.request(sync_field)

    def _on_remote_change(self, generation: int, snapshot: SyncSnapshot) -> None:
        if generation != self._generation or self.state is not SyncState.LIVE:
            _logger.debug("Discarding stale delivery for generation %s", generation)
            return
        self._apply(snapshot)

    def _apply(self, snapshot: SyncSnapshot) -> None:
        skip = self._scheduler.pending() | frozenset(self._deferred)
        merge_snapshot(self.stores, snapshot, skip=skip)
        if snapshot.last_synced_at is not None:
            self._set_last_synced(snapshot.last_synced_at)

    async def _push_field(self, sync_field: SyncField) -> None:
        partition = self.partition
        if self.state is not SyncState.LIVE or partition is None:
            self._deferred.add(sync_field)
            return
        await self._write(partition, self.stores.read_patch(sync_field))

    async def _write(self, partition: PartitionKey, patch: SnapshotPatch) -> bool:
        try:
            written_at = await self.gateway.write(partition, patch)
        except TransientWriteError as exc:
            regions = ", ".join(sorted(patch.fields()))
            _logger.error("Push of %s to %s failed: %s", regions, partition, exc)
            self.last_error = str(exc)
            return False
        self.last_error = None
        self._set_last_synced(written_at)
        return True

    def _set_last_synced(self, value: datetime | None) -> None:
        self.last_synced_at = value
        if self.on_last_synced is not None:
            self.on_last_synced(value)
