"""Tests for Supabase adapter implementations."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from types import SimpleNamespace

import httpx
import pytest
from supabase import AuthApiError, PostgrestAPIError

from dinnerhelp_sync.adapters.supabase_document_gateway import (
    SupabaseDocumentGateway,
    extract_record,
)
from dinnerhelp_sync.adapters.supabase_household_repository import (
    SupabaseHouseholdRepository,
)
from dinnerhelp_sync.adapters.supabase_identity_provider import (
    SupabaseIdentityProvider,
)
from dinnerhelp_sync.domain.errors import (
    AccountExistsError,
    AuthNetworkError,
    InvalidCredentialsError,
    TransientReadError,
    TransientWriteError,
)
from dinnerhelp_sync.domain.households import Household
from dinnerhelp_sync.domain.identity import Identity, PartitionKey
from dinnerhelp_sync.domain.snapshots import SnapshotPatch, SyncField, SyncSnapshot
from dinnerhelp_sync.services.households import HouseholdResolver
from dinnerhelp_sync.services.sync import SyncCoordinator, SyncState
from tests.conftest import InMemoryHouseholdRepository

ANA = Identity(id="user-ana")

SNAPSHOT_ROW = {
    "pantry": [
        {
            "id": "p1",
            "name": "Flour",
            "category": "grains",
            "quantity": 1,
            "unit": "kg",
            "added_at": "2024-05-01T09:00:00+00:00",
        }
    ],
    "shopping_items": None,
    "meal_plans": [],
    "favorites": ["r1"],
    "custom_recipes": None,
    "last_synced_at": "2024-05-01T10:00:00Z",
}


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    name: str
    responses: list[list[dict[str, object]]] = field(default_factory=list)
    error: Exception | None = None
    last_payload: object | None = None
    last_filters: list[tuple[str, object]] = field(default_factory=list)
    last_on_conflict: str | None = None
    action: str | None = None

    def queue(self, data: list[dict[str, object]]) -> None:
        self.responses.append(data)

    def select(self, *_args) -> "FakeTable":
        self.action = "select"
        return self

    def insert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.action = "insert"
        self.last_payload = payload
        return self

    def update(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.action = "update"
        self.last_payload = payload
        return self

    def upsert(self, payload, on_conflict: str = "") -> "FakeTable":  # type: ignore[no-untyped-def]
        self.action = "upsert"
        self.last_payload = payload
        self.last_on_conflict = on_conflict
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((column, value))
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    async def execute(self) -> FakeResponse:
        if self.error is not None:
            raise self.error
        if self.responses:
            return FakeResponse(self.responses.pop(0))
        return FakeResponse([])


@dataclass
class FakeChannel:
    topic: str
    bindings: list[dict[str, object]] = field(default_factory=list)
    subscribed: bool = False

    def on_postgres_changes(self, event: str, **kwargs) -> "FakeChannel":  # type: ignore[no-untyped-def]
        self.bindings.append({"event": event, **kwargs})
        return self

    async def subscribe(self) -> "FakeChannel":
        self.subscribed = True
        return self

    def emit(self, payload: dict[str, object]) -> None:
        for binding in self.bindings:
            binding["callback"](payload)  # type: ignore[operator]


@dataclass
class FakeAuthSubscription:
    unsubscribed: bool = False

    def unsubscribe(self) -> None:
        self.unsubscribed = True


@dataclass
class FakeAuth:
    user: object | None = None
    error: Exception | None = None
    calls: list[tuple[str, object]] = field(default_factory=list)
    callbacks: list[object] = field(default_factory=list)
    subscription: FakeAuthSubscription = field(default_factory=FakeAuthSubscription)

    async def _respond(self, name: str, payload: object) -> SimpleNamespace:
        self.calls.append((name, payload))
        if self.error is not None:
            raise self.error
        return SimpleNamespace(user=self.user, session=None)

    async def sign_in_with_password(self, credentials: dict[str, object]):  # type: ignore[no-untyped-def]
        return await self._respond("sign_in_with_password", credentials)

    async def sign_up(self, credentials: dict[str, object]):  # type: ignore[no-untyped-def]
        return await self._respond("sign_up", credentials)

    async def sign_in_with_id_token(self, credentials: dict[str, object]):  # type: ignore[no-untyped-def]
        return await self._respond("sign_in_with_id_token", credentials)

    async def sign_in_with_otp(self, credentials: dict[str, object]):  # type: ignore[no-untyped-def]
        return await self._respond("sign_in_with_otp", credentials)

    async def verify_otp(self, params: dict[str, object]):  # type: ignore[no-untyped-def]
        return await self._respond("verify_otp", params)

    async def sign_out(self) -> None:
        await self._respond("sign_out", None)

    def on_auth_state_change(self, callback) -> FakeAuthSubscription:  # type: ignore[no-untyped-def]
        self.callbacks.append(callback)
        return self.subscription


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)
    channels: list[FakeChannel] = field(default_factory=list)
    removed: list[FakeChannel] = field(default_factory=list)
    auth: FakeAuth = field(default_factory=FakeAuth)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name)
        return self.tables[name]

    def channel(self, topic: str) -> FakeChannel:
        channel = FakeChannel(topic)
        self.channels.append(channel)
        return channel

    async def remove_channel(self, channel: FakeChannel) -> None:
        self.removed.append(channel)


def _user(**metadata: object) -> SimpleNamespace:
    return SimpleNamespace(
        id="user-ana", email="ana@example.com", phone="", user_metadata=metadata
    )


def test_gateway_read_decodes_row_and_filters_on_key() -> None:
    client = FakeSupabaseClient()
    client.table("user_data").queue([SNAPSHOT_ROW])
    gateway = SupabaseDocumentGateway(client)  # type: ignore[arg-type]

    snapshot = asyncio.run(gateway.read(PartitionKey.personal(ANA)))

    assert snapshot is not None
    assert [item.name for item in snapshot.pantry] == ["Flour"]
    assert snapshot.shopping_items is None
    assert snapshot.meal_plans == ()
    assert snapshot.favorites == ("r1",)
    assert snapshot.last_synced_at.isoformat() == "2024-05-01T10:00:00+00:00"
    assert client.tables["user_data"].last_filters == [("user_id", "user-ana")]


def test_gateway_read_treats_unsynced_row_as_absent() -> None:
    client = FakeSupabaseClient()
    client.table("household_data").queue(
        [{**SNAPSHOT_ROW, "last_synced_at": None}]
    )
    gateway = SupabaseDocumentGateway(client)  # type: ignore[arg-type]

    assert asyncio.run(gateway.read(PartitionKey.household("household_1"))) is None
    assert asyncio.run(gateway.read(PartitionKey.household("household_1"))) is None


def test_gateway_read_rejects_malformed_rows() -> None:
    client = FakeSupabaseClient()
    table = client.table("user_data")
    table.queue([{**SNAPSHOT_ROW, "pantry": {"oops": 1}}])
    table.queue([{**SNAPSHOT_ROW, "pantry": [{"name": "No id"}]}])
    gateway = SupabaseDocumentGateway(client)  # type: ignore[arg-type]

    with pytest.raises(TransientReadError):
        asyncio.run(gateway.read(PartitionKey.personal(ANA)))
    with pytest.raises(TransientReadError):
        asyncio.run(gateway.read(PartitionKey.personal(ANA)))


def test_malformed_row_does_not_block_sign_in(stores) -> None:
    client = FakeSupabaseClient()
    client.table("user_data").queue([{**SNAPSHOT_ROW, "pantry": {"oops": 1}}])
    stores.pantry.add_ingredient("Eggs")
    coordinator = SyncCoordinator(
        stores=stores,
        gateway=SupabaseDocumentGateway(client),  # type: ignore[arg-type]
        resolver=HouseholdResolver(InMemoryHouseholdRepository()),
        push_debounce_seconds=0.0,
    )

    asyncio.run(coordinator.start(ANA))

    assert coordinator.state is SyncState.LIVE
    table = client.tables["user_data"]
    assert table.last_on_conflict == "user_id"
    assert [item["name"] for item in table.last_payload["pantry"]] == ["Eggs"]  # type: ignore[index]
    assert client.channels[0].subscribed
    assert [item.name for item in stores.pantry.ingredients] == ["Eggs"]


def test_gateway_read_maps_transport_errors() -> None:
    client = FakeSupabaseClient()
    client.table("user_data").error = httpx.ConnectError("unreachable")
    gateway = SupabaseDocumentGateway(client)  # type: ignore[arg-type]

    with pytest.raises(TransientReadError):
        asyncio.run(gateway.read(PartitionKey.personal(ANA)))


def test_gateway_write_upserts_only_patch_columns() -> None:
    client = FakeSupabaseClient()
    gateway = SupabaseDocumentGateway(client)  # type: ignore[arg-type]
    partition = PartitionKey.household("household_1")

    written_at = asyncio.run(
        gateway.write(partition, SnapshotPatch.of(SyncField.FAVORITES, ["r1"]))
    )

    table = client.tables["household_data"]
    assert table.action == "upsert"
    assert table.last_on_conflict == "household_id"
    assert table.last_payload == {
        "household_id": "household_1",
        "favorites": ["r1"],
        "last_synced_at": written_at.isoformat(),
    }
    assert isinstance(written_at, datetime)


def test_gateway_write_maps_api_errors() -> None:
    client = FakeSupabaseClient()
    client.table("user_data").error = PostgrestAPIError(
        {"message": "permission denied", "code": "42501"}
    )
    gateway = SupabaseDocumentGateway(client)  # type: ignore[arg-type]

    with pytest.raises(TransientWriteError):
        asyncio.run(
            gateway.write(
                PartitionKey.personal(ANA), SnapshotPatch.of(SyncField.PANTRY, [])
            )
        )


def test_gateway_subscribe_delivers_current_and_changes() -> None:
    client = FakeSupabaseClient()
    client.table("user_data").queue([SNAPSHOT_ROW])
    gateway = SupabaseDocumentGateway(client)  # type: ignore[arg-type]
    received: list[SyncSnapshot] = []

    async def scenario() -> None:
        subscription = await gateway.subscribe(
            PartitionKey.personal(ANA), received.append
        )
        channel = client.channels[0]
        channel.emit(
            {"data": {"type": "UPDATE", "record": {**SNAPSHOT_ROW, "favorites": []}}}
        )
        channel.emit(
            {"data": {"type": "UPDATE", "record": {**SNAPSHOT_ROW, "pantry": "bad"}}}
        )
        channel.emit({"data": {"type": "DELETE", "record": None}})
        await subscription.close()
        await subscription.close()

    asyncio.run(scenario())

    channel = client.channels[0]
    assert channel.subscribed
    assert channel.topic == "sync:personal:user-ana"
    assert channel.bindings[0]["table"] == "user_data"
    assert channel.bindings[0]["filter"] == "user_id=eq.user-ana"
    assert [snapshot.favorites for snapshot in received] == [("r1",), ()]
    assert client.removed == [channel]


def test_extract_record_accepts_flat_payloads() -> None:
    assert extract_record({"record": {"user_id": "a"}}) == {"user_id": "a"}
    assert extract_record({"new": {"user_id": "b"}}) == {"user_id": "b"}
    assert extract_record({"data": {}}) is None


def test_household_repository_reads_pointer_and_household() -> None:
    client = FakeSupabaseClient()
    client.table("user_data").queue([{"household_id": "household_1"}])
    client.table("households").queue(
        [
            {
                "id": "household_1",
                "name": "Smiths",
                "owner_id": "user-ana",
                "invite_code": "ABC234",
                "member_ids": ["user-ana", "user-ben"],
                "created_at": "2024-05-01T00:00:00+00:00",
            }
        ]
    )
    repository = SupabaseHouseholdRepository(client)  # type: ignore[arg-type]

    household_id = asyncio.run(repository.get_user_household_id("user-ana"))
    household = asyncio.run(repository.find_by_invite_code("ABC234"))

    assert household_id == "household_1"
    assert household is not None
    assert household.member_ids == ("user-ana", "user-ben")
    assert client.tables["households"].last_filters == [("invite_code", "ABC234")]


def test_household_repository_writes() -> None:
    client = FakeSupabaseClient()
    household = Household(
        id="household_1",
        name="Smiths",
        owner_id="user-ana",
        invite_code="ABC234",
        member_ids=("user-ana",),
    )
    client.table("households").queue(
        [
            {
                "id": "household_1",
                "name": "Smiths",
                "owner_id": "user-ana",
                "invite_code": "ABC234",
                "member_ids": ["user-ana"],
                "created_at": None,
            }
        ]
    )
    repository = SupabaseHouseholdRepository(client)  # type: ignore[arg-type]

    created = asyncio.run(repository.create_household(household))
    asyncio.run(repository.set_user_household_id("user-ana", "household_1"))
    asyncio.run(repository.update_members("household_1", ("user-ana", "user-ben")))

    assert created == household
    assert client.tables["user_data"].last_payload == {
        "user_id": "user-ana",
        "household_id": "household_1",
    }
    assert client.tables["user_data"].last_on_conflict == "user_id"
    assert client.tables["households"].last_payload == {
        "member_ids": ["user-ana", "user-ben"]
    }


def test_household_repository_lookup_failure_is_transient() -> None:
    client = FakeSupabaseClient()
    client.table("user_data").error = httpx.ReadTimeout("slow")
    repository = SupabaseHouseholdRepository(client)  # type: ignore[arg-type]

    with pytest.raises(TransientReadError):
        asyncio.run(repository.get_user_household_id("user-ana"))


def test_identity_provider_sign_in_maps_user() -> None:
    client = FakeSupabaseClient()
    client.auth.user = _user(full_name="Ana Smith", avatar_url="https://img/a.png")
    provider = SupabaseIdentityProvider(client)  # type: ignore[arg-type]

    identity = asyncio.run(provider.sign_in("ana@example.com", "secret"))

    assert identity == Identity(
        id="user-ana",
        display_name="Ana Smith",
        email="ana@example.com",
        phone=None,
        photo_url="https://img/a.png",
    )
    assert client.auth.calls[0] == (
        "sign_in_with_password",
        {"email": "ana@example.com", "password": "secret"},
    )


def test_identity_provider_passes_display_name_and_otp_params() -> None:
    client = FakeSupabaseClient()
    client.auth.user = _user(display_name="Ana")
    provider = SupabaseIdentityProvider(client)  # type: ignore[arg-type]

    asyncio.run(provider.sign_up("ana@example.com", "secret", "Ana"))
    asyncio.run(provider.sign_in_with_federated_provider("google", "id-token"))
    asyncio.run(provider.send_phone_code("+15550100"))
    asyncio.run(provider.verify_phone_code("+15550100", "123456"))

    assert client.auth.calls == [
        (
            "sign_up",
            {
                "email": "ana@example.com",
                "password": "secret",
                "options": {"data": {"display_name": "Ana"}},
            },
        ),
        ("sign_in_with_id_token", {"provider": "google", "token": "id-token"}),
        ("sign_in_with_otp", {"phone": "+15550100"}),
        ("verify_otp", {"phone": "+15550100", "token": "123456", "type": "sms"}),
    ]


def test_identity_provider_maps_auth_errors() -> None:
    client = FakeSupabaseClient()
    provider = SupabaseIdentityProvider(client)  # type: ignore[arg-type]

    client.auth.error = AuthApiError(
        "Invalid login credentials", 400, "invalid_credentials"
    )
    with pytest.raises(InvalidCredentialsError):
        asyncio.run(provider.sign_in("ana@example.com", "wrong"))

    client.auth.error = AuthApiError("User already registered", 422, "user_already_exists")
    with pytest.raises(AccountExistsError):
        asyncio.run(provider.sign_up("ana@example.com", "secret"))

    client.auth.error = httpx.ConnectError("offline")
    with pytest.raises(AuthNetworkError):
        asyncio.run(provider.sign_out())


def test_identity_provider_forwards_auth_state_changes() -> None:
    client = FakeSupabaseClient()
    provider = SupabaseIdentityProvider(client)  # type: ignore[arg-type]
    seen: list[Identity | None] = []

    unsubscribe = provider.on_identity_change(seen.append)
    callback = client.auth.callbacks[0]
    callback("SIGNED_IN", SimpleNamespace(user=_user()))  # type: ignore[operator]
    callback("SIGNED_OUT", None)  # type: ignore[operator]
    unsubscribe()

    assert [item.id if item else None for item in seen] == ["user-ana", None]
    assert client.auth.subscription.unsubscribed
