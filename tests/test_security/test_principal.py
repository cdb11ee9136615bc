"""Tests for the Principal value and the system bypass gate."""
from __future__ import annotations

import dataclasses

import pytest

from saddle_authz.security.principal import SYSTEM_USER_ID, Principal, Role, is_system_principal, system_principal


def test_system_gate_is_user_id_zero_only():
    assert is_system_principal(system_principal())
    assert is_system_principal(Principal(user_id=SYSTEM_USER_ID, role=Role.USER))
    assert not is_system_principal(Principal(user_id=1, role=Role.SUPERVISOR))


def test_principal_is_immutable():
    principal = Principal(user_id=3, role=Role.FITTER)
    with pytest.raises(dataclasses.FrozenInstanceError):
        principal.fitter_id = 9  # type: ignore[misc]


def test_with_scope_returns_copy():
    principal = Principal(user_id=3, role=Role.FITTER)
    scoped = principal.with_scope(fitter_id=1)
    assert principal.fitter_id is None
    assert scoped.fitter_id == 1
    assert scoped.scope_derived
    assert not scoped.scope_failed


def test_with_failed_scope_clears_ids():
    principal = Principal(user_id=5, role=Role.FACTORY, factory_id=4)
    failed = principal.with_failed_scope()
    assert failed.factory_id is None
    assert failed.scope_failed


def test_to_dict():
    principal = Principal(user_id=5, role=Role.FACTORY, factory_id=1)
    assert principal.to_dict() == {"user_id": 5, "role": "factory", "factory_id": 1, "fitter_id": None}
