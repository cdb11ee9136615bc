"""Tests for the policy matrix and visible-row diagnostics."""
from __future__ import annotations

from saddle_authz.security.principal import Principal, Role
from saddle_authz.security.report import policy_matrix, visible_row_counts


def test_policy_matrix(hierarchy):
    matrix = policy_matrix(hierarchy)
    assert set(matrix) == {"fitter", "admin", "factory", "customsaddler", "supervisor", "user"}
    assert matrix["supervisor"]["credential"] == {"template": "all", "operations": ["delete", "read", "write"]}
    assert matrix["admin"]["log_entry"] == {"template": "all", "operations": ["read"]}
    assert matrix["fitter"]["customer"]["template"] == "own_by_fitter"
    assert matrix["customsaddler"]["order"] == {"template": "deny_all", "operations": []}


def test_visible_row_counts_system(seeded):
    counts = visible_row_counts(seeded)
    assert counts["credential"] == 8
    assert counts["customer"] == 3
    assert counts["order"] == 3
    assert counts["log_entry"] == 4


def test_visible_row_counts_fitter(seeded, scoped_session):
    db = scoped_session(Principal(user_id=3, role=Role.FITTER, fitter_id=1, scope_derived=True))
    counts = visible_row_counts(db)
    assert counts == {
        "credential": 1,
        "fitter": 1,
        "factory": 0,
        "factory_employee": 0,
        "customer": 1,
        "order": 2,
        "log_entry": 1,
    }
