"""Tests for scope derivation against the authoritative fitter/factory tables."""
from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from saddle_authz.models import Factory, Fitter
from saddle_authz.security.errors import ScopeDerivationError
from saddle_authz.security.principal import Principal, Role
from saddle_authz.security.scope import derive_scope


def test_fitter_scope_derived(seeded):
    principal = derive_scope(seeded, Principal(user_id=3, role=Role.FITTER))
    assert principal.fitter_id == 1
    assert principal.factory_id is None
    assert principal.scope_derived


def test_factory_scope_derived(seeded):
    principal = derive_scope(seeded, Principal(user_id=5, role=Role.FACTORY))
    assert principal.factory_id == 1
    assert principal.fitter_id is None


def test_deleted_factory_is_ignored(seeded):
    factory = seeded.scalars(select(Factory).where(Factory.user_id == 5)).one()
    factory.deleted = True
    seeded.commit()

    principal = derive_scope(seeded, Principal(user_id=5, role=Role.FACTORY))
    assert principal.factory_id is None
    assert principal.scope_derived
    assert not principal.scope_failed


def test_fitter_without_fitter_row(seeded):
    principal = derive_scope(seeded, Principal(user_id=6, role=Role.FITTER))
    assert principal.fitter_id is None


def test_client_supplied_ids_are_discarded(seeded):
    claimed = Principal(user_id=3, role=Role.FITTER, fitter_id=2, factory_id=1)
    principal = derive_scope(seeded, claimed)
    assert principal.fitter_id == 1
    assert principal.factory_id is None


def test_other_roles_carry_no_scope(seeded):
    principal = derive_scope(seeded, Principal(user_id=2, role=Role.ADMIN, fitter_id=1))
    assert principal.fitter_id is None
    assert principal.scope_derived


def test_already_derived_principal_skips_lookup(seeded):
    derived = derive_scope(seeded, Principal(user_id=3, role=Role.FITTER))
    seeded.add(Fitter(user_id=3, name="Second profile"))
    seeded.commit()
    assert derive_scope(seeded, derived) is derived


def test_storage_failure_raises_scope_error(engine):
    # No tables were created on this engine.
    with Session(engine) as broken:
        with pytest.raises(ScopeDerivationError):
            derive_scope(broken, Principal(user_id=5, role=Role.FACTORY))
