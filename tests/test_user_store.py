"""
Tests for UserStore.

These tests cover:
- Role membership and the flattened role fields
- Claims, logins and tokens
- Optimistic concurrency and the read-modify-write retry
- Cascading delete, including partial failure
- Argument checks, cancellation and disposal
"""
import asyncio
from typing import Optional
from unittest.mock import AsyncMock, patch

import pytest

from docstore_identity.core.exceptions import (
    OperationCancelledError,
    RoleNotFoundError,
    StoreDisposedError,
)
from docstore_identity.models import (
    Claim,
    IdentityError,
    IdentityResult,
    User,
    UserLoginInfo,
    UserRole,
)
from docstore_identity.services import UserStore, create_identity_stores
from tests.conftest import make_role, make_user


async def create_user(user_store, user_name="alice", **fields):
    user = make_user(user_name, **fields)
    assert (await user_store.create(user)).succeeded
    return user


async def create_role(role_store, name):
    role = make_role(name)
    assert (await role_store.create(role)).succeeded
    return role


class TestUsers:

    @pytest.mark.asyncio
    async def test_create_and_lookups(self, user_store):
        user = await create_user(user_store)

        assert (await user_store.find_by_id(user.id)).user_name == "alice"
        assert (await user_store.find_by_name("ALICE")).id == user.id
        assert (await user_store.find_by_email("ALICE@EXAMPLE.COM")).id == user.id
        assert await user_store.find_by_id("missing") is None

    @pytest.mark.asyncio
    async def test_users_query(self, user_store):
        await create_user(user_store, "alice")
        await create_user(user_store, "bob")

        names = sorted(u.user_name for u in await user_store.users.to_list())
        assert names == ["alice", "bob"]

    @pytest.mark.asyncio
    async def test_update_regenerates_stamp(self, user_store):
        user = await create_user(user_store)
        old_stamp = user.concurrency_stamp

        user.phone_number = "555-0100"
        assert (await user_store.update(user)).succeeded
        assert user.concurrency_stamp != old_stamp

        stored = await user_store.find_by_id(user.id)
        assert stored.phone_number == "555-0100"
        assert stored.concurrency_stamp == user.concurrency_stamp

    @pytest.mark.asyncio
    async def test_stale_update_rejected(self, user_store):
        user = await create_user(user_store)
        first = await user_store.find_by_id(user.id)
        second = await user_store.find_by_id(user.id)

        assert (await user_store.update(first)).succeeded

        stale_stamp = second.concurrency_stamp
        result = await user_store.update(second)
        assert not result.succeeded
        assert result.status_code == 412
        assert second.concurrency_stamp == stale_stamp

    def test_normalize(self):
        assert UserStore.normalize("alice@example.com") == "ALICE@EXAMPLE.COM"
        assert UserStore.normalize(None) is None


class TestRoles:

    @pytest.mark.asyncio
    async def test_role_membership_scenario(self, user_store, role_store):
        await create_role(role_store, "Admin")
        alice = await create_user(user_store, "alice")

        assert (await user_store.add_to_role(alice, "ADMIN")).succeeded
        members = await user_store.get_users_in_role("ADMIN")
        assert [u.id for u in members] == [alice.id]

        assert (await user_store.remove_from_role(alice, "ADMIN")).succeeded
        assert await user_store.get_users_in_role("ADMIN") == []

    @pytest.mark.asyncio
    async def test_prefix_role_names_kept_apart(self, user_store, role_store):
        admin = await create_role(role_store, "Admin")
        admin2 = await create_role(role_store, "Admin2")
        alice = await create_user(user_store, "alice")

        await user_store.add_to_role(alice, "ADMIN")
        await user_store.add_to_role(alice, "ADMIN2")
        assert alice.flatten_role_names == "Admin,Admin2,"

        await user_store.remove_from_role(alice, "ADMIN")

        stored = await user_store.find_by_id(alice.id)
        assert stored.flatten_role_names == "Admin2,"
        assert stored.flatten_role_ids == f"{admin2.id},"
        assert admin.id not in stored.flatten_role_ids
        assert await user_store.get_roles(stored) == ["Admin2"]
        assert await user_store.get_users_in_role("ADMIN") == []
        assert [u.id for u in await user_store.get_users_in_role("ADMIN2")] == [alice.id]

    @pytest.mark.asyncio
    async def test_is_in_role(self, user_store, role_store):
        await create_role(role_store, "Admin")
        alice = await create_user(user_store)

        assert not await user_store.is_in_role(alice, "ADMIN")
        await user_store.add_to_role(alice, "ADMIN")
        assert await user_store.is_in_role(alice, "ADMIN")
        assert not await user_store.is_in_role(alice, "MISSING")

    @pytest.mark.asyncio
    async def test_add_to_missing_role(self, user_store):
        alice = await create_user(user_store)

        with pytest.raises(RoleNotFoundError, match="MISSING does not exist."):
            await user_store.add_to_role(alice, "MISSING")
        with pytest.raises(LookupError):
            await user_store.add_to_role(alice, "MISSING")

    @pytest.mark.asyncio
    async def test_remove_from_role_not_member(self, user_store, role_store):
        await create_role(role_store, "Admin")
        alice = await create_user(user_store)

        assert (await user_store.remove_from_role(alice, "ADMIN")).succeeded
        assert (await user_store.remove_from_role(alice, "MISSING")).succeeded

    @pytest.mark.asyncio
    async def test_adding_twice_keeps_one_token(self, user_store, role_store):
        await create_role(role_store, "Admin")
        alice = await create_user(user_store)

        await user_store.add_to_role(alice, "ADMIN")
        await user_store.add_to_role(alice, "ADMIN")
        assert alice.flatten_role_names == "Admin,"

    @pytest.mark.asyncio
    async def test_double_add_then_remove_is_consistent(self, user_store, role_store):
        await create_role(role_store, "Admin")
        alice = await create_user(user_store)

        await user_store.add_to_role(alice, "ADMIN")
        await user_store.add_to_role(alice, "ADMIN")
        assert len(await user_store.repositories.user_roles.find_by_user(alice.id)) == 1

        await user_store.remove_from_role(alice, "ADMIN")

        assert await user_store.repositories.user_roles.find_by_user(alice.id) == []
        assert not await user_store.is_in_role(alice, "ADMIN")
        assert await user_store.get_roles(alice) == []
        assert await user_store.get_users_in_role("ADMIN") == []

    @pytest.mark.asyncio
    async def test_remove_clears_duplicate_links(self, user_store, role_store):
        admin = await create_role(role_store, "Admin")
        alice = await create_user(user_store)
        await user_store.add_to_role(alice, "ADMIN")
        await user_store.repositories.user_roles.add(UserRole(user_id=alice.id, role_id=admin.id))

        await user_store.remove_from_role(alice, "ADMIN")

        assert not await user_store.is_in_role(alice, "ADMIN")
        assert await user_store.get_roles(alice) == []

    @pytest.mark.asyncio
    async def test_without_auto_save_caller_persists(self, user_store, role_store):
        await create_role(role_store, "Admin")
        alice = await create_user(user_store)
        manual = UserStore(user_store.repositories, auto_save_user=False)

        await manual.add_to_role(alice, "ADMIN")
        assert alice.flatten_role_names == "Admin,"
        assert await manual.get_users_in_role("ADMIN") == []

        assert (await manual.update(alice)).succeeded
        assert [u.id for u in await manual.get_users_in_role("ADMIN")] == [alice.id]


class TestConcurrentFlattenedEdits:

    @pytest.mark.asyncio
    async def test_stale_snapshot_is_retried(self, user_store, role_store):
        admin = await create_role(role_store, "Admin")
        alice = await create_user(user_store)
        stale = await user_store.find_by_id(alice.id)

        # Another writer updates the user first
        other = await user_store.find_by_id(alice.id)
        other.phone_number = "555-0100"
        assert (await user_store.update(other)).succeeded

        result = await user_store.add_to_role(stale, "ADMIN")
        assert result.succeeded

        stored = await user_store.find_by_id(alice.id)
        assert stored.flatten_role_ids == f"{admin.id},"
        assert stored.phone_number == "555-0100"
        assert stale.concurrency_stamp == stored.concurrency_stamp

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, user_store, role_store):
        await create_role(role_store, "Admin")
        alice = await create_user(user_store)
        conflict = IdentityResult.failed(
            IdentityError(code="PreconditionFailed", description="stale", status_code=412)
        )

        with patch.object(user_store.repositories.users, "update", AsyncMock(return_value=conflict)) as update:
            result = await user_store.add_to_role(alice, "ADMIN")

        assert result.status_code == 412
        assert update.await_count == user_store.concurrency_retries


class TestClaims:

    @pytest.mark.asyncio
    async def test_add_get_and_lookup(self, user_store):
        alice = await create_user(user_store, "alice")
        await create_user(user_store, "bob")
        claims = [Claim(type="dept", value="sales"), Claim(type="level", value="3")]

        assert (await user_store.add_claims(alice, claims)).succeeded
        assert alice.flatten_claims == "dept|sales,level|3,"
        assert sorted(c.value for c in await user_store.get_claims(alice)) == ["3", "sales"]

        users = await user_store.get_users_for_claim(Claim(type="dept", value="sales"))
        assert [u.id for u in users] == [alice.id]

    @pytest.mark.asyncio
    async def test_replace_claim(self, user_store):
        alice = await create_user(user_store)
        await user_store.add_claims(alice, [Claim(type="dept", value="sales")])

        result = await user_store.replace_claim(
            alice, Claim(type="dept", value="sales"), Claim(type="dept", value="ops")
        )
        assert result.succeeded
        assert [c.value for c in await user_store.get_claims(alice)] == ["ops"]

        stored = await user_store.find_by_id(alice.id)
        assert stored.flatten_claims == "dept|ops,"
        assert await user_store.get_users_for_claim(Claim(type="dept", value="sales")) == []

    @pytest.mark.asyncio
    async def test_remove_claims_exact(self, user_store):
        alice = await create_user(user_store)
        await user_store.add_claims(
            alice, [Claim(type="dept", value="sales"), Claim(type="dept", value="sales2")]
        )

        assert (await user_store.remove_claims(alice, [Claim(type="dept", value="sales")])).succeeded

        stored = await user_store.find_by_id(alice.id)
        assert stored.flatten_claims == "dept|sales2,"
        assert [c.value for c in await user_store.get_claims(alice)] == ["sales2"]

    @pytest.mark.asyncio
    async def test_claim_type_with_claim_separator_rejected(self, user_store):
        alice = await create_user(user_store)
        await user_store.add_claims(alice, [Claim(type="a", value="b|c")])

        with pytest.raises(ValueError):
            await user_store.add_claims(alice, [Claim(type="a|b", value="c")])
        with pytest.raises(ValueError):
            await user_store.replace_claim(
                alice, Claim(type="a", value="b|c"), Claim(type="a|b", value="c")
            )

        users = await user_store.get_users_for_claim(Claim(type="a", value="b|c"))
        assert [u.id for u in users] == [alice.id]

    @pytest.mark.asyncio
    async def test_remove_strips_one_token_per_removed_document(self, user_store):
        alice = await create_user(user_store)
        sales = Claim(type="dept", value="sales")
        await user_store.add_claims(alice, [sales, sales])
        assert alice.flatten_claims == "dept|sales,dept|sales,"

        repos = user_store.repositories
        failure = IdentityResult.failed(
            IdentityError(code="ServiceUnavailable", description="down", status_code=503)
        )
        remove = AsyncMock(side_effect=[IdentityResult.success(), failure])
        with patch.object(repos.user_claims, "remove", remove):
            result = await user_store.remove_claims(alice, [sales])

        assert result.status_code == 503

        stored = await user_store.find_by_id(alice.id)
        assert stored.flatten_claims == "dept|sales,"

    @pytest.mark.asyncio
    async def test_claim_with_separator_rejected(self, user_store):
        alice = await create_user(user_store)
        with pytest.raises(ValueError):
            await user_store.add_claims(alice, [Claim(type="dept", value="a,b")])
        assert await user_store.get_claims(alice) == []


class TestLoginsAndTokens:

    @pytest.mark.asyncio
    async def test_logins(self, user_store):
        alice = await create_user(user_store)
        login = UserLoginInfo(login_provider="github", provider_key="42", provider_display_name="GitHub")

        assert (await user_store.add_login(alice, login)).succeeded
        assert (await user_store.find_by_login("github", "42")).id == alice.id
        assert [info.provider_key for info in await user_store.get_logins(alice)] == ["42"]

        assert (await user_store.remove_login(alice, "github", "42")).succeeded
        assert await user_store.find_by_login("github", "42") is None
        assert await user_store.get_logins(alice) == []

    @pytest.mark.asyncio
    async def test_tokens(self, user_store):
        alice = await create_user(user_store)

        assert await user_store.get_token(alice, "github", "refresh") is None
        await user_store.set_token(alice, "github", "refresh", "v1")
        await user_store.set_token(alice, "github", "refresh", "v2")

        assert await user_store.get_token(alice, "github", "refresh") == "v2"
        assert len(await user_store.repositories.user_tokens.get_tokens(alice.id)) == 1

        assert (await user_store.remove_token(alice, "github", "refresh")).succeeded
        assert await user_store.get_token(alice, "github", "refresh") is None


class TestDelete:

    async def _populate(self, user_store, role_store):
        await create_role(role_store, "Admin")
        alice = await create_user(user_store)
        await user_store.add_to_role(alice, "ADMIN")
        await user_store.add_claims(alice, [Claim(type="dept", value="sales"), Claim(type="level", value="3")])
        await user_store.add_login(alice, UserLoginInfo(login_provider="github", provider_key="42"))
        await user_store.set_token(alice, "github", "refresh", "v1")
        return alice

    @pytest.mark.asyncio
    async def test_cascade_leaves_nothing(self, user_store, role_store):
        alice = await self._populate(user_store, role_store)
        repos = user_store.repositories

        assert (await user_store.delete(alice)).succeeded

        assert await user_store.find_by_id(alice.id) is None
        assert await repos.user_roles.find_by_user(alice.id) == []
        assert await repos.user_claims.find_by_user(alice.id) == []
        assert await repos.user_logins.find_by_user(alice.id) == []
        assert await repos.user_tokens.get_tokens(alice.id) == []
        assert await role_store.find_by_name("ADMIN") is not None

    @pytest.mark.asyncio
    async def test_cascade_continues_after_failure(self, user_store, role_store, caplog):
        alice = await self._populate(user_store, role_store)
        repos = user_store.repositories
        failure = IdentityResult.failed(
            IdentityError(code="ServiceUnavailable", description="down", status_code=503)
        )

        with patch.object(repos.user_claims, "remove", AsyncMock(return_value=failure)):
            result = await user_store.delete(alice)

        assert result.succeeded
        assert len(await repos.user_claims.find_by_user(alice.id)) == 2
        assert await repos.user_roles.find_by_user(alice.id) == []
        assert await repos.user_logins.find_by_user(alice.id) == []
        assert await repos.user_tokens.get_tokens(alice.id) == []
        assert "orphaned claim" in caplog.text

    @pytest.mark.asyncio
    async def test_missing_user_skips_cascade(self, user_store):
        ghost = make_user("ghost")
        result = await user_store.delete(ghost)
        assert result.status_code == 404


class TestRederive:

    @pytest.mark.asyncio
    async def test_rebuilds_flattened_fields(self, user_store, role_store):
        admin = await create_role(role_store, "Admin")
        alice = await create_user(user_store)
        await user_store.add_to_role(alice, "ADMIN")
        await user_store.add_claims(alice, [Claim(type="dept", value="sales")])

        alice.flatten_role_names = "Bogus,"
        alice.flatten_role_ids = ""
        alice.flatten_claims = "dept|ops,"
        await user_store.update(alice)

        assert (await user_store.rederive_flattened_fields(alice)).succeeded
        assert (await user_store.rederive_flattened_fields(alice)).succeeded

        stored = await user_store.find_by_id(alice.id)
        assert stored.flatten_role_names == "Admin,"
        assert stored.flatten_role_ids == f"{admin.id},"
        assert stored.flatten_claims == "dept|sales,"


class TestArgumentChecks:

    @pytest.mark.asyncio
    async def test_none_user(self, user_store):
        with pytest.raises(TypeError):
            await user_store.create(None)
        with pytest.raises(TypeError):
            await user_store.get_claims(None)

    @pytest.mark.asyncio
    async def test_empty_strings(self, user_store):
        alice = make_user()
        with pytest.raises(ValueError):
            await user_store.add_to_role(alice, "")
        with pytest.raises(ValueError):
            await user_store.find_by_login("", "42")
        with pytest.raises(ValueError):
            await user_store.get_token(alice, "github", "")

    @pytest.mark.asyncio
    async def test_cancelled(self, user_store):
        cancel = asyncio.Event()
        cancel.set()
        with pytest.raises(OperationCancelledError):
            await user_store.create(make_user(), cancel)
        with pytest.raises(OperationCancelledError):
            await user_store.find_by_name("ALICE", cancel)

    @pytest.mark.asyncio
    async def test_closed_store(self, user_store):
        user_store.close()
        assert user_store.closed
        with pytest.raises(StoreDisposedError):
            await user_store.find_by_id("any")
        with pytest.raises(StoreDisposedError):
            user_store.users


class ApplicationUser(User):
    """Application-specific user with an extra field."""
    display_name: Optional[str] = None


class TestCustomModels:

    @pytest.mark.asyncio
    async def test_stores_use_given_user_class(self, settings, mock_async_mongo_client):
        user_store, role_store = await create_identity_stores(
            settings, mock_async_mongo_client, user_cls=ApplicationUser
        )
        await create_role(role_store, "Admin")
        user = ApplicationUser(user_name="dora", normalized_user_name="DORA", display_name="Dora")
        await user_store.create(user)
        await user_store.add_to_role(user, "ADMIN")

        members = await user_store.get_users_in_role("ADMIN")
        assert isinstance(members[0], ApplicationUser)
        assert members[0].display_name == "Dora"
        assert isinstance(await user_store.find_by_name("DORA"), ApplicationUser)
