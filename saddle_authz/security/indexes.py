"""
Index support for scoped bulk reads.

Every bulk read of a protected entity is narrowed by `scope_column = value`.
A missing index on such a column is a performance problem, never a correctness
one; `missing_scope_indexes` reports them so deployments can catch it early.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, inspect

from saddle_authz.security.hierarchy import SCOPE_COLUMNS, Entity

logger = logging.getLogger(__name__)


def scope_index_columns(tables: dict[Entity, str]) -> list[tuple[str, str]]:
    """(table, column) pairs the evaluator can filter on, for the given entity -> table map."""

    pairs: set[tuple[str, str]] = set()
    for (entity, _template), column in SCOPE_COLUMNS.items():
        table = tables.get(entity)
        if table is not None:
            pairs.add((table, column))
    return sorted(pairs)


def missing_scope_indexes(engine: Engine, tables: dict[Entity, str]) -> list[tuple[str, str]]:
    """
    Return scope columns with no supporting index.

    A column counts as indexed when it is the leading column of an index or
    of the primary key.
    """

    inspector = inspect(engine)
    missing: list[tuple[str, str]] = []
    for table, column in scope_index_columns(tables):
        leading: set[str] = set()
        for index in inspector.get_indexes(table):
            columns = index.get("column_names") or []
            if columns and columns[0]:
                leading.add(columns[0])
        pk_columns = inspector.get_pk_constraint(table).get("constrained_columns") or []
        if pk_columns:
            leading.add(pk_columns[0])

        if column not in leading:
            missing.append((table, column))

    if missing:
        logger.warning("Scope columns without an index: %s", missing)
    return missing
