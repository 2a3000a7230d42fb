"""
Tests for the storage providers.

Every test runs against both the shared-container and the per-type
strategy; callers must not be able to tell them apart.
"""
import asyncio
from datetime import datetime, timezone
from typing import ClassVar, Optional
from unittest.mock import AsyncMock, patch

import pytest

from docstore_identity.core.exceptions import (
    ConfigurationError,
    OperationCancelledError,
    StoreError,
)
from docstore_identity.database.container import PartitionKey
from docstore_identity.models import Role, User, UserToken
from docstore_identity.storage import (
    PerTypeStorageProvider,
    SharedContainerStorageProvider,
    resolve_partition_key,
)
from tests.conftest import make_user


class UnpartitionedUser(User):
    """User type stored without a partition discriminator."""
    partition_key: ClassVar[Optional[str]] = None


class TenantUser(User):
    """User subclass with its own partition and an extra field."""
    partition_key: ClassVar[Optional[str]] = "TenantUser"

    tenant: Optional[str] = None


class TestPartitionKeyResolution:

    def test_same_key_for_type_and_instance(self):
        assert resolve_partition_key(User) == resolve_partition_key(make_user())
        assert resolve_partition_key(User) == PartitionKey("User")

    def test_missing_discriminator_is_none(self):
        assert resolve_partition_key(UnpartitionedUser) == PartitionKey.NONE


class TestStrategy:

    def test_provider_type(self, provider, settings):
        expected = {
            "shared": SharedContainerStorageProvider,
            "per_type": PerTypeStorageProvider,
        }[settings.storage_strategy]
        assert isinstance(provider, expected)

    def test_per_type_unknown_collection(self):
        class Orphan(User):
            collection: ClassVar[str] = "orphans"

        provider = PerTypeStorageProvider({})
        with pytest.raises(ConfigurationError):
            provider.container_for(Orphan)


class TestWrites:

    @pytest.mark.asyncio
    async def test_create_then_find(self, provider):
        user = make_user(
            lockout_end=datetime(2030, 1, 1, 12, 0, 0, 123456, tzinfo=timezone.utc),
            lockout_enabled=True,
            access_failed_count=2,
            flatten_role_names="Admin,",
        )
        result = await provider.create(user)

        assert result.succeeded
        assert user.timestamp is not None

        found = await provider.find_by_id(User, user.id)
        assert found is not None
        assert found.model_dump(exclude={"timestamp"}) == user.model_dump(exclude={"timestamp"})
        assert found.lockout_end == datetime(2030, 1, 1, 12, 0, 0, 123000, tzinfo=timezone.utc)
        assert found.timestamp is not None

    @pytest.mark.asyncio
    async def test_stored_lockout_compares_with_aware_now(self, provider):
        user = make_user(lockout_end=datetime(2030, 1, 1))
        await provider.create(user)

        found = await provider.find_by_id(User, user.id)
        assert found.lockout_end.tzinfo is not None
        assert found.lockout_end > datetime.now(timezone.utc)

    @pytest.mark.asyncio
    async def test_none_entity_fails_without_store_call(self, provider):
        for write in (provider.create, provider.update, provider.delete):
            result = await write(None)
            assert not result.succeeded
            assert result.status_code == 400

    @pytest.mark.asyncio
    async def test_duplicate_create_is_conflict(self, provider):
        user = make_user()
        await provider.create(user)

        result = await provider.create(user)
        assert not result.succeeded
        assert result.status_code == 409
        assert result.errors[0].code == "Conflict"

    @pytest.mark.asyncio
    async def test_update_missing_is_not_found(self, provider):
        result = await provider.update(make_user())
        assert result.status_code == 404

    @pytest.mark.asyncio
    async def test_update_if_match(self, provider):
        user = make_user()
        await provider.create(user)
        stamp = user.concurrency_stamp

        user.phone_number = "555-0100"
        user.concurrency_stamp = "next"
        assert (await provider.update(user, if_match={"concurrency_stamp": stamp})).succeeded

        user.concurrency_stamp = "after"
        result = await provider.update(user, if_match={"concurrency_stamp": stamp})
        assert result.status_code == 412

        stored = await provider.find_by_id(User, user.id)
        assert stored.phone_number == "555-0100"
        assert stored.concurrency_stamp == "next"

    @pytest.mark.asyncio
    async def test_delete(self, provider):
        role = Role(name="Admin", normalized_name="ADMIN")
        await provider.create(role)

        assert (await provider.delete(role)).succeeded
        assert await provider.find_by_id(Role, role.id) is None
        assert (await provider.delete(role)).status_code == 404

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, provider):
        cancel = asyncio.Event()
        cancel.set()
        with pytest.raises(OperationCancelledError):
            await provider.create(make_user(), cancel)
        with pytest.raises(OperationCancelledError):
            await provider.find_by_id(User, "x", cancel)


class TestReads:

    @pytest.mark.asyncio
    async def test_find_by_id_empty_or_missing(self, provider):
        assert await provider.find_by_id(User, None) is None
        assert await provider.find_by_id(User, "") is None
        assert await provider.find_by_id(User, "missing") is None

    @pytest.mark.asyncio
    async def test_find_by_id_swallows_store_errors(self, provider):
        container = provider.container_for(User)
        with patch.object(
            container, "read_item", AsyncMock(side_effect=StoreError(503, "down"))
        ):
            assert await provider.find_by_id(User, "any") is None

    @pytest.mark.asyncio
    async def test_wrong_type_partition_sees_nothing(self, provider):
        user = make_user()
        await provider.create(user)

        assert await provider.find_by_id(TenantUser, user.id) is None
        assert await provider.queryable(TenantUser).where(user_name="alice").to_list() == []
        assert len(await provider.queryable(User).where(user_name="alice").to_list()) == 1

    @pytest.mark.asyncio
    async def test_unpartitioned_type(self, provider):
        user = UnpartitionedUser(user_name="bob")
        assert (await provider.create(user)).succeeded

        found = await provider.find_by_id(UnpartitionedUser, user.id)
        assert found is not None
        assert found.user_name == "bob"
        assert await provider.find_by_id(User, user.id) is None

        stored = await provider.container_for(UnpartitionedUser).collection.find_one({"_id": user.id})
        assert stored["PartitionKey"] is None

    @pytest.mark.asyncio
    async def test_subclass_round_trip(self, provider):
        user = TenantUser(user_name="carol", tenant="contoso")
        await provider.create(user)

        found = await provider.find_by_id(TenantUser, user.id)
        assert isinstance(found, TenantUser)
        assert found.tenant == "contoso"

    @pytest.mark.asyncio
    async def test_query_pages(self, provider):
        for i in range(5):
            await provider.create(UserToken(user_id="u1", login_provider="p", name=f"t{i}"))

        feed = provider.queryable(UserToken).where(user_id="u1").feed(page_size=2)
        sizes = []
        while feed.has_more_results:
            sizes.append(len(await feed.read_next()))
        assert sizes == [2, 2, 1]

    @pytest.mark.asyncio
    async def test_query_first(self, provider):
        assert await provider.queryable(User).where(user_name="nobody").first() is None

        await provider.create(make_user())
        first = await provider.queryable(User).where(normalized_user_name="ALICE").first()
        assert first.user_name == "alice"

    @pytest.mark.asyncio
    async def test_contains_token_query(self, provider):
        await provider.create(make_user("alice", flatten_role_names="Admin2,"))
        await provider.create(make_user("bob", flatten_role_names="Editor,Admin,"))

        users = await provider.queryable(User).where_contains_token("flatten_role_names", "Admin").to_list()
        assert [u.user_name for u in users] == ["bob"]

    def test_where_rejects_unknown_field(self, provider):
        with pytest.raises(ValueError):
            provider.queryable(User).where(no_such_field="x")
