"""Diagnostics: what the hierarchy grants, and what a session can actually see."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from saddle_authz.db.filters import protected_models
from saddle_authz.security.hierarchy import Entity, RoleHierarchy
from saddle_authz.security.principal import Role


def policy_matrix(hierarchy: RoleHierarchy) -> dict[str, dict[str, dict[str, object]]]:
    """role -> entity -> {"template", "operations"}; JSON-serializable."""

    matrix: dict[str, dict[str, dict[str, object]]] = {}
    for role in Role:
        row: dict[str, dict[str, object]] = {}
        for entity in Entity:
            rule = hierarchy.lookup(role, entity)
            row[entity.value] = {
                "template": rule.template.value,
                "operations": sorted(op.value for op in rule.operations),
            }
        matrix[role.name.lower()] = row
    return matrix


def visible_row_counts(db: Session) -> dict[str, int]:
    """
    Count the rows of each protected entity visible through `db`.

    Counts go through the normal ORM path, so they reflect the session's context.
    """

    counts: dict[str, int] = {}
    for model, entity in protected_models():
        counts[entity.value] = len(db.scalars(select(model)).all())
    return counts
