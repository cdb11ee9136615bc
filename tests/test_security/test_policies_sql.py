"""Tests for the rendered PostgreSQL row-level security DDL."""
from __future__ import annotations

import pytest

from saddle_authz.db.filters import protected_tables
from saddle_authz.security.policies_sql import render_helper_functions, render_policy_statements


@pytest.fixture
def statements(hierarchy) -> list[str]:
    return render_policy_statements(hierarchy, protected_tables())


def _policy(statements: list[str], name: str) -> str:
    matches = [s for s in statements if s.startswith(f"CREATE POLICY {name} ")]
    assert len(matches) == 1, name
    return matches[0]


def test_helpers_are_fail_closed():
    helpers = render_helper_functions()
    assert len(helpers) == 4
    for sql in helpers:
        assert "NULLIF(current_setting(" in sql
        assert ", true)" in sql
        assert "COALESCE" not in sql


def test_every_protected_table_has_rls_enabled(statements):
    for table in protected_tables().values():
        assert f'ALTER TABLE "{table}" ENABLE ROW LEVEL SECURITY' in statements


def test_system_bypass_matches_only_user_zero(statements):
    sql = _policy(statements, "system_bypass_customers")
    assert "FOR ALL" in sql
    assert "USING (authz_user_id() = 0)" in sql


def test_supervisor_policy_on_every_table(statements):
    for table in protected_tables().values():
        assert "authz_user_role() = 5" in _policy(statements, f"supervisor_all_{table}")


def test_fitter_customer_policy(statements):
    sql = _policy(statements, "fitter_own_by_fitter_customers")
    assert "FOR ALL" in sql
    assert "USING (authz_user_role() = 1 AND fitter_id = authz_fitter_id())" in sql
    assert "WITH CHECK (authz_user_role() = 1 AND fitter_id = authz_fitter_id())" in sql


def test_admin_logs_are_select_only(statements):
    sql = _policy(statements, "admin_all_log_select")
    assert "FOR SELECT" in sql
    assert not any(s.startswith("CREATE POLICY admin_all_log_") and "FOR SELECT" not in s for s in statements)


def test_own_logs_are_select_only(statements):
    sql = _policy(statements, "fitter_read_only_own_logs_log_select")
    assert "user_id = authz_user_id()" in sql
    assert not any("read_only_own_logs_log_insert" in s or "read_only_own_logs_log_delete" in s for s in statements)


def test_no_policies_for_customsaddler(statements):
    assert not any("customsaddler" in s for s in statements)


def test_admin_has_no_credential_policy(statements):
    assert not any(s.startswith("CREATE POLICY admin_") and '"credentials"' in s for s in statements)
