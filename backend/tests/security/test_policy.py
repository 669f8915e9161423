"""
授权策略单元测试
"""
import pytest

from app.models.ontology import Category, Role, Task
from app.security import permissions
from app.security.identity import Principal
from app.security.policy import (
    AuthorizationRule, DenyReason, authorize, can_manage, can_manage_all, manageable_roles,
)


def _principal(role, tasks=(), **flags):
    category = Category.GUEST if role == Role.GUEST else Category.STAFF
    return Principal(id=1, category=category, role=role, tasks=tuple(tasks), **flags)


class TestAuthorize:
    """authorize() 测试"""

    def test_owner_passes_task_rule_without_tasks(self):
        assert authorize(_principal(Role.OWNER), permissions.LAUNDRY_VIEW)

    def test_staff_with_task_allowed(self):
        decision = authorize(_principal(Role.STAFF, [Task.LAUNDRY]), permissions.LAUNDRY_VIEW)
        assert decision.allowed

    def test_staff_without_task_denied(self):
        decision = authorize(_principal(Role.STAFF, [Task.ROOM]), permissions.LAUNDRY_VIEW)
        assert not decision
        assert decision.reason == DenyReason.TASK_NOT_ASSIGNED
        assert "laundry" in decision.message

    def test_staff_not_in_role_list(self):
        decision = authorize(_principal(Role.STAFF, [Task.LAUNDRY]), permissions.LAUNDRY_ADMIN)
        assert decision.reason == DenyReason.ROLE_NOT_ALLOWED

    def test_guest_cannot_reach_staff_routes(self):
        decision = authorize(_principal(Role.GUEST), permissions.BOOKING_MANAGE)
        assert decision.reason == DenyReason.ROLE_NOT_ALLOWED

    def test_staff_cannot_reach_guest_routes(self):
        decision = authorize(_principal(Role.OWNER), permissions.GUEST_SELF)
        assert decision.reason == DenyReason.ROLE_NOT_ALLOWED

    @pytest.mark.parametrize("flag", ["is_blocked", "is_banned", "is_deleted"])
    def test_restriction_checked_before_role(self, flag):
        decision = authorize(_principal(Role.OWNER, **{flag: True}), permissions.DASHBOARD_VIEW)
        assert decision.reason == DenyReason.ACCOUNT_RESTRICTED

    def test_rule_without_task_only_checks_role(self):
        rule = AuthorizationRule.of(Role.STAFF)
        assert authorize(_principal(Role.STAFF), rule)

    def test_missing_principal_is_denied(self):
        assert not authorize(None, permissions.ANY_STAFF)

    def test_unexpected_role_value_is_denied(self):
        odd = Principal(id=1, category=Category.STAFF, role="Janitor")
        assert not authorize(odd, permissions.ANY_STAFF)

    def test_plain_string_task_is_denied_with_message(self):
        rule = AuthorizationRule(frozenset({Role.STAFF}), required_task="hall_x")
        decision = authorize(_principal(Role.STAFF), rule)
        assert decision.reason == DenyReason.TASK_NOT_ASSIGNED
        assert "hall_x" in decision.message

    def test_plain_string_task_matches_enum_task(self):
        rule = AuthorizationRule(frozenset({Role.STAFF}), required_task="laundry")
        assert authorize(_principal(Role.STAFF, [Task.LAUNDRY]), rule)

    @pytest.mark.parametrize("rule", [None, object(), AuthorizationRule(frozenset())])
    def test_missing_rule_is_denied(self, rule):
        decision = authorize(_principal(Role.OWNER), rule)
        assert decision.reason == DenyReason.ROLE_NOT_ALLOWED

    def test_decision_detail(self):
        detail = authorize(_principal(Role.STAFF), permissions.LAUNDRY_VIEW).to_detail()
        assert detail["kind"] == "TaskNotAssigned"


class TestCanManage:
    """账号管理规则"""

    @pytest.mark.parametrize("actor,target,allowed", [
        (Role.OWNER, Role.ADMIN, True),
        (Role.OWNER, Role.STAFF, True),
        (Role.OWNER, Role.OWNER, False),
        (Role.ADMIN, Role.STAFF, True),
        (Role.ADMIN, Role.ADMIN, False),
        (Role.ADMIN, Role.OWNER, False),
        (Role.STAFF, Role.STAFF, False),
        (Role.GUEST, Role.STAFF, False),
    ])
    def test_matrix(self, actor, target, allowed):
        assert bool(can_manage(actor, target)) is allowed

    def test_denial_names_target_role(self):
        decision = can_manage(Role.ADMIN, Role.ADMIN)
        assert decision.reason == DenyReason.TARGET_NOT_MANAGEABLE
        assert "Admin" in decision.message

    def test_role_change_checks_both_roles(self):
        assert not can_manage_all(Role.ADMIN, [Role.STAFF, Role.ADMIN])
        assert can_manage_all(Role.OWNER, [Role.STAFF, Role.ADMIN])
        assert not can_manage_all(Role.OWNER, [Role.ADMIN, Role.OWNER])

    def test_manageable_roles(self):
        assert manageable_roles(Role.OWNER) == {Role.ADMIN, Role.STAFF}
        assert manageable_roles(Role.STAFF) == frozenset()
