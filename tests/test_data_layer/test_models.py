"""Tests for model defaults."""
from __future__ import annotations

from datetime import timezone

from saddle_authz.models import Credential, LogEntry
from saddle_authz.security.principal import Role


def test_created_at_defaults_to_aware_utc(db_session):
    credential = Credential(user_id=40, email="new@example.com", user_type=Role.USER)
    entry = LogEntry(user_id=40, action="login")
    db_session.add_all([credential, entry])
    db_session.flush()

    for row in (credential, entry):
        assert row.created_at.tzinfo is timezone.utc
