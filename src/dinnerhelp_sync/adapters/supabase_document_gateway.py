"""Supabase-backed remote data gateway."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import httpx
from supabase import AsyncClient, PostgrestAPIError

from dinnerhelp_sync.domain.errors import TransientReadError, TransientWriteError
from dinnerhelp_sync.domain.identity import PartitionKey, PartitionKind
from dinnerhelp_sync.domain.snapshots import SnapshotPatch, SyncField, SyncSnapshot
from dinnerhelp_sync.services.sync import (
    RemoteDataGateway,
    SnapshotListener,
    Subscription,
)

_logger = logging.getLogger(__name__)

_TABLES = {
    PartitionKind.PERSONAL: ("user_data", "user_id"),
    PartitionKind.HOUSEHOLD: ("household_data", "household_id"),
}
_COLUMNS = ", ".join([*(item.value for item in SyncField), "last_synced_at"])


def table_for(partition: PartitionKey) -> tuple[str, str]:
    """Return the table and key column holding a partition's document."""
    return _TABLES[partition.kind]


def extract_record(payload: Mapping[str, Any]) -> Mapping[str, Any] | None:
    """Return the new row from a realtime postgres_changes payload."""
    data = payload.get("data")
    if isinstance(data, Mapping):
        record = data.get("record")
        if isinstance(record, Mapping):
            return record
    for key in ("record", "new"):
        record = payload.get(key)
        if isinstance(record, Mapping) and record:
            return record
    return None


def snapshot_from_row(row: Mapping[str, Any] | None) -> SyncSnapshot | None:
    """Decode a row; rows never written by a sync count as absent."""
    if not row or row.get("last_synced_at") is None:
        return None
    return SyncSnapshot.from_payload(row)


@dataclass
class SupabaseSubscription(Subscription):
    """Realtime channel registration for one partition."""

    client: AsyncClient
    channel: Any
    _closed: bool = field(default=False, init=False)

    @property
    def closed(self) -> bool:
        """Return whether the channel has been removed."""
        return self._closed

    async def close(self) -> None:
        """Remove the channel; later calls do nothing."""
        if self._closed:
            return
        self._closed = True
        await self.client.remove_channel(self.channel)


@dataclass
class SupabaseDocumentGateway(RemoteDataGateway):
    """Supabase implementation of per-partition snapshot documents."""

    client: AsyncClient

    async def read(self, partition: PartitionKey) -> SyncSnapshot | None:
        """Return the partition's snapshot, if it was ever written."""
        table, key = table_for(partition)
        try:
            response = await (
                self.client.table(table)
                .select(_COLUMNS)
                .eq(key, partition.id)
                .limit(1)
                .execute()
            )
        except (httpx.HTTPError, PostgrestAPIError) as exc:
            raise TransientReadError(f"Reading {partition} failed: {exc}") from exc
        if not response.data:
            return None
        try:
            return snapshot_from_row(response.data[0])
        except (KeyError, TypeError, ValueError) as exc:
            raise TransientReadError(f"Decoding {partition} failed: {exc}") from exc

    async def write(self, partition: PartitionKey, patch: SnapshotPatch) -> datetime:
        """Upsert only the patch's columns so other regions are left untouched."""
        table, key = table_for(partition)
        written_at = datetime.now(tz=UTC)
        payload: dict[str, object] = {
            key: partition.id,
            **patch.to_payload(),
            "last_synced_at": written_at.isoformat(),
        }
        try:
            await self.client.table(table).upsert(payload, on_conflict=key).execute()
        except (httpx.HTTPError, PostgrestAPIError) as exc:
            raise TransientWriteError(f"Writing {partition} failed: {exc}") from exc
        return written_at

    async def subscribe(
        self, partition: PartitionKey, on_change: SnapshotListener
    ) -> Subscription:
        """Open a realtime channel and deliver the current snapshot right away."""
        table, key = table_for(partition)

        def handle_change(payload: dict[str, Any]) -> None:
            try:
                snapshot = snapshot_from_row(extract_record(payload))
            except (KeyError, TypeError, ValueError) as exc:
                _logger.warning("Dropping malformed change for %s: %s", partition, exc)
                return
            if snapshot is not None:
                on_change(snapshot)

        channel = self.client.channel(f"sync:{partition}")
        channel.on_postgres_changes(
            "*",
            schema="public",
            table=table,
            filter=f"{key}=eq.{partition.id}",
            callback=handle_change,
        )
        try:
            await channel.subscribe()
        except (httpx.HTTPError, OSError) as exc:
            raise TransientReadError(
                f"Subscribing to {partition} failed: {exc}"
            ) from exc
        subscription = SupabaseSubscription(client=self.client, channel=channel)
        try:
            current = await self.read(partition)
        except TransientReadError as exc:
            _logger.warning("Initial delivery for %s failed: %s", partition, exc)
            current = None
        if current is not None and not subscription.closed:
            on_change(current)
        return subscription
