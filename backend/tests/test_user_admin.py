import pytest

from medbox.constants.enums import Role, UserStatus
from medbox.errors import AccountLocked, DuplicateUsername, InvalidCredentials, UserNotFound
from medbox.utils.pin_hash import verify_pin


def test_create_user_hashes_pin_and_syncs_claims(user_admin, user_store, token_authority):
    user = user_admin.create_user("Alice", "1234", "Alice A.", Role.USER, created_by="boss")

    assert user.id == "alice"
    assert user.username == "alice"
    assert user.display_name == "Alice A."
    assert user.created_by == "boss"
    assert user.status == UserStatus.ACTIVE

    stored = user_store.get("alice")
    assert stored.pin_hash != "1234"
    assert verify_pin("1234", stored.pin_hash)
    assert token_authority.synced == [("alice", {"role": "user", "username": "alice"})]


def test_duplicate_username_is_rejected_without_partial_write(user_admin, user_store, token_authority):
    user_admin.create_user("alice", "1234", "Alice", Role.USER)

    with pytest.raises(DuplicateUsername):
        user_admin.create_user("ALICE", "5678", "Other Alice", Role.ADMIN)

    stored = user_store.get("alice")
    assert stored.display_name == "Alice"
    assert stored.role == Role.USER
    assert len(user_admin.list_active_users()) == 1
    assert len(token_authority.synced) == 1


def test_duplicate_check_includes_deactivated_users(user_admin):
    user_admin.create_user("alice", "1234", "Alice", Role.USER)
    user_admin.deactivate_user("alice")

    with pytest.raises(DuplicateUsername):
        user_admin.create_user("alice", "1234", "Alice again", Role.USER)


def test_list_active_users_is_sorted_and_skips_deactivated(user_admin, make_user):
    for name in ("zoe", "bob", "mia"):
        make_user(name)
    user_admin.deactivate_user("mia")

    users = user_admin.list_active_users()

    assert [u.username for u in users] == ["bob", "zoe"]


def test_update_role_changes_store_and_claims(user_admin, make_user, user_store, token_authority, authenticator):
    make_user("alice")

    user = user_admin.update_role("alice", Role.ADMIN)

    assert user.role == Role.ADMIN
    assert user_store.get("alice").role == Role.ADMIN
    assert token_authority.synced[-1] == ("alice", {"role": "admin", "username": "alice"})
    token = authenticator.login("alice", "1234").token
    assert token_authority.verify(token)["role"] == "admin"


def test_update_role_unknown_user(user_admin):
    with pytest.raises(UserNotFound):
        user_admin.update_role("ghost", Role.ADMIN)


def test_reset_pin_clears_lockout(user_admin, make_user, user_store, authenticator):
    make_user("alice")
    for _ in range(5):
        with pytest.raises((InvalidCredentials, AccountLocked)):
            authenticator.login("alice", "9999")
    with pytest.raises(AccountLocked):
        authenticator.login("alice", "1234")

    user_admin.reset_pin("alice", "2468")

    stored = user_store.get("alice")
    assert stored.failed_attempts == 0
    assert stored.last_failed_at is None
    assert authenticator.login("alice", "2468").user.id == "alice"


def test_reset_pin_unknown_user(user_admin):
    with pytest.raises(UserNotFound):
        user_admin.reset_pin("ghost", "1234")


def test_deactivate_is_a_soft_delete(user_admin, make_user, user_store):
    make_user("alice")

    user_admin.deactivate_user("alice")

    stored = user_store.get("alice")
    assert stored is not None
    assert stored.status == UserStatus.DEACTIVATED
    assert user_admin.get_user("alice").is_active is False


def test_deactivate_unknown_user(user_admin):
    with pytest.raises(UserNotFound):
        user_admin.deactivate_user("ghost")


def test_unknown_user_ids(user_admin, make_user):
    make_user("alice")
    make_user("bob")
    user_admin.deactivate_user("bob")

    assert user_admin.unknown_user_ids(["alice", "bob", "ghost"]) == {"bob", "ghost"}
    assert user_admin.unknown_user_ids([]) == set()


def test_returned_users_carry_no_pin_hash(user_admin, make_user):
    created = user_admin.create_user("bob", "1234", "Bob")
    make_user("alice")

    returned = [
        created,
        user_admin.get_user("bob"),
        user_admin.update_role("bob", Role.ADMIN),
        *user_admin.list_active_users(),
    ]

    for user in returned:
        assert "pin_hash" not in user.model_dump()
