"""
身份解析器单元测试
"""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from app.models.ontology import Category, Role, Task
from app.security.identity import (
    RESET_PURPOSE, AuthConfig, IdentityResolver, Principal, Rejection, RejectionKind,
    decode_credential, issue_credential, parse_tasks,
)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
CONFIG = AuthConfig(secret_key="unit-test-secret")


def _staff(id=1, role="Staff", tasks=None, **flags):
    return SimpleNamespace(
        id=id, role=role, tasks=tasks if tasks is not None else ["laundry"],
        is_blocked=flags.get("is_blocked", False),
        is_banned=flags.get("is_banned", False),
        is_deleted=flags.get("is_deleted", False),
    )


def _guest(id=1, **flags):
    return SimpleNamespace(
        id=id,
        is_blocked=flags.get("is_blocked", False),
        is_banned=flags.get("is_banned", False),
        is_deleted=flags.get("is_deleted", False),
    )


class FakeStore:
    def __init__(self, guests=(), staff=()):
        self.guests = {g.id: g for g in guests}
        self.staff = {s.id: s for s in staff}

    def get_guest(self, principal_id):
        return self.guests.get(principal_id)

    def get_staff(self, principal_id):
        return self.staff.get(principal_id)


def _resolver(store, now=NOW):
    return IdentityResolver(CONFIG, store, clock=lambda: now)


def _token(subject_id, category, **kwargs):
    return issue_credential(CONFIG, subject_id, category, now=NOW, **kwargs)


class TestAuthenticate:
    """authenticate() 测试"""

    def test_staff_with_valid_token(self):
        store = FakeStore(staff=[_staff(id=7, role="Admin", tasks=[])])
        result = _resolver(store).authenticate(_token(7, Category.STAFF), "staff")

        assert isinstance(result, Principal)
        assert result.id == 7
        assert result.category == Category.STAFF
        assert result.role == Role.ADMIN

    def test_guest_gets_guest_role(self):
        store = FakeStore(guests=[_guest(id=3)])
        result = _resolver(store).authenticate(_token(3, Category.GUEST), "guest")

        assert isinstance(result, Principal)
        assert result.role == Role.GUEST
        assert result.tasks == ()

    def test_from_header_is_case_insensitive(self):
        store = FakeStore(guests=[_guest(id=3)])
        result = _resolver(store).authenticate(_token(3, Category.GUEST), " Guest ")
        assert isinstance(result, Principal)

    def test_missing_token(self):
        result = _resolver(FakeStore()).authenticate(None, "staff")
        assert isinstance(result, Rejection)
        assert result.kind == RejectionKind.MISSING_CREDENTIAL
        assert result.status_code == 401

    def test_missing_category(self):
        result = _resolver(FakeStore()).authenticate(_token(1, Category.STAFF), None)
        assert result.kind == RejectionKind.MISSING_CREDENTIAL

    def test_unknown_category(self):
        result = _resolver(FakeStore()).authenticate(_token(1, Category.STAFF), "vendor")
        assert result.kind == RejectionKind.INVALID_CATEGORY
        assert result.status_code == 400

    def test_tampered_token(self):
        token = _token(1, Category.STAFF)
        result = _resolver(FakeStore(staff=[_staff()])).authenticate(token[:-2] + "xx", "staff")
        assert result.kind == RejectionKind.INVALID_CREDENTIAL

    def test_token_signed_with_other_secret(self):
        other = AuthConfig(secret_key="someone-else")
        token = issue_credential(other, 1, Category.STAFF, now=NOW)
        result = _resolver(FakeStore(staff=[_staff()])).authenticate(token, "staff")
        assert result.kind == RejectionKind.INVALID_CREDENTIAL

    def test_expired_token(self):
        store = FakeStore(staff=[_staff()])
        later = NOW + CONFIG.staff_token_ttl
        result = _resolver(store, now=later).authenticate(_token(1, Category.STAFF), "staff")
        assert result.kind == RejectionKind.CREDENTIAL_EXPIRED
        assert result.status_code == 401

    def test_token_rejected_just_after_expiry(self):
        store = FakeStore(staff=[_staff()])
        past = NOW + CONFIG.staff_token_ttl + timedelta(seconds=1)
        result = _resolver(store, now=past).authenticate(_token(1, Category.STAFF), "staff")
        assert result.kind == RejectionKind.CREDENTIAL_EXPIRED

    def test_authenticate_is_idempotent(self):
        store = FakeStore(staff=[_staff(id=7, tasks=["laundry", "room"])])
        resolver = _resolver(store)
        token = _token(7, Category.STAFF)

        first = resolver.authenticate(token, "staff")
        second = resolver.authenticate(token, "staff")
        assert first.id == second.id == 7
        assert first == second

    def test_token_valid_just_before_expiry(self):
        store = FakeStore(staff=[_staff()])
        almost = NOW + CONFIG.staff_token_ttl - timedelta(seconds=1)
        result = _resolver(store, now=almost).authenticate(_token(1, Category.STAFF), "staff")
        assert isinstance(result, Principal)

    def test_guest_token_cannot_be_used_as_staff(self):
        store = FakeStore(guests=[_guest(id=1)], staff=[_staff(id=1, role="Owner")])
        result = _resolver(store).authenticate(_token(1, Category.GUEST), "staff")
        assert result.kind == RejectionKind.INVALID_CREDENTIAL

    def test_reset_token_is_not_an_access_token(self):
        store = FakeStore(staff=[_staff()])
        token = _token(1, Category.STAFF, purpose=RESET_PURPOSE)
        result = _resolver(store).authenticate(token, "staff")
        assert result.kind == RejectionKind.INVALID_CREDENTIAL

    def test_unknown_account(self):
        result = _resolver(FakeStore()).authenticate(_token(99, Category.STAFF), "staff")
        assert result.kind == RejectionKind.PRINCIPAL_NOT_FOUND
        assert result.status_code == 401

    @pytest.mark.parametrize("flag", ["is_blocked", "is_banned", "is_deleted"])
    def test_restricted_staff_rejected(self, flag):
        store = FakeStore(staff=[_staff(**{flag: True})])
        result = _resolver(store).authenticate(_token(1, Category.STAFF), "staff")
        assert result.kind == RejectionKind.ACCOUNT_RESTRICTED
        assert result.status_code == 403

    def test_restricted_guest_resolves_with_flags(self):
        store = FakeStore(guests=[_guest(is_blocked=True)])
        result = _resolver(store).authenticate(_token(1, Category.GUEST), "guest")

        assert isinstance(result, Principal)
        assert result.is_restricted

    def test_resolver_does_not_modify_records(self):
        record = _staff()
        before = dict(vars(record))
        _resolver(FakeStore(staff=[record])).authenticate(_token(1, Category.STAFF), "staff")
        assert vars(record) == before


class TestCredentials:
    """凭证签发与解析"""

    def test_claims_bind_category_and_purpose(self):
        claims = decode_credential(CONFIG, _token(5, Category.GUEST), now=NOW)
        assert claims["sub"] == "5"
        assert claims["cat"] == "guest"
        assert claims["purpose"] == "access"

    def test_ttl_by_category(self):
        guest_claims = decode_credential(CONFIG, _token(1, Category.GUEST), now=NOW)
        staff_claims = decode_credential(CONFIG, _token(1, Category.STAFF), now=NOW)
        assert guest_claims["exp"] - guest_claims["iat"] == 3600
        assert staff_claims["exp"] - staff_claims["iat"] == 8 * 3600

    def test_reset_token_expires_after_ten_minutes(self):
        token = _token(1, Category.GUEST, purpose=RESET_PURPOSE)
        assert isinstance(decode_credential(CONFIG, token, RESET_PURPOSE, now=NOW + timedelta(minutes=9)), dict)
        expired = decode_credential(CONFIG, token, RESET_PURPOSE, now=NOW + timedelta(minutes=10))
        assert expired.kind == RejectionKind.CREDENTIAL_EXPIRED


class TestParseTasks:
    """任务字段规整"""

    def test_scalar_task(self):
        assert parse_tasks("laundry") == (Task.LAUNDRY,)

    def test_list_keeps_order_and_drops_duplicates(self):
        assert parse_tasks(["room", "laundry", "room"]) == (Task.ROOM, Task.LAUNDRY)

    def test_unknown_and_none_values_are_ignored(self):
        assert parse_tasks(["none", "cooking", "dish"]) == (Task.DISH,)
        assert parse_tasks(None) == ()
