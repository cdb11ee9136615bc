from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import BindParameter, ClauseElement, event, false, inspect, select
from sqlalchemy.orm import ORMExecuteState, Session, with_loader_criteria

from saddle_authz.db.base import Base
from saddle_authz.security.context import AuthzContext, get_context
from saddle_authz.security.errors import AccessDenied
from saddle_authz.security.evaluator import DENY, Decision, Effect
from saddle_authz.security.hierarchy import Entity, Operation

import saddle_authz.models  # noqa: F401  (register mapped classes)

logger = logging.getLogger(__name__)


def protected_models() -> list[tuple[type, Entity]]:
    """Mapped classes that declare the protected entity they represent."""

    found: list[tuple[type, Entity]] = []
    for mapper in Base.registry.mappers:
        entity = getattr(mapper.class_, "__authz_entity__", None)
        if entity is not None:
            found.append((mapper.class_, entity))
    return found


def _decide(authz: AuthzContext | None, entity: Entity, operation: Operation, row: Any = None) -> Decision:
    if authz is None:
        # No context attached: fail closed.
        return DENY
    return authz.authorize(entity, operation, row)


@event.listens_for(Session, "do_orm_execute")
def _apply_authorization_filters(execute_state: ORMExecuteState) -> None:
    """
    Transparent row scoping for every ORM statement.

    Existing query code stays unchanged:
        db.scalars(select(Customer)).all()
    returns only the rows the session's principal may read. ORM UPDATE/DELETE
    statements are narrowed the same way for WRITE/DELETE.
    """

    if execute_state.is_select:
        if execute_state.is_column_load or execute_state.is_relationship_load:
            return
        operation = Operation.READ
    elif execute_state.is_update:
        _check_bulk_update(execute_state)
        operation = Operation.WRITE
    elif execute_state.is_delete:
        operation = Operation.DELETE
    elif execute_state.is_insert:
        _check_bulk_insert(execute_state)
        return
    else:
        return

    authz = get_context(execute_state.session)
    if authz is None:
        logger.warning("ORM %s without authorization context; protected rows hidden", operation.value)

    options = []
    for model, entity in protected_models():
        decision = _decide(authz, entity, operation)
        if decision.effect is Effect.ALLOW:
            continue
        if decision.effect is Effect.ALLOW_WITH_FILTER and decision.predicate is not None:
            criteria = decision.predicate.to_criteria(model)
        else:
            criteria = false()
        options.append(with_loader_criteria(model, criteria, include_aliases=True))

    if options:
        execute_state.statement = execute_state.statement.options(*options)


def _check_bulk_insert(execute_state: ORMExecuteState) -> None:
    mapper = execute_state.bind_mapper
    entity = getattr(mapper.class_, "__authz_entity__", None) if mapper is not None else None
    if entity is None:
        return

    decision = _decide(get_context(execute_state.session), entity, Operation.WRITE)
    if decision.effect is not Effect.ALLOW:
        raise AccessDenied(entity.value, Operation.WRITE.value)


def _assigned_values(execute_state: ORMExecuteState) -> dict[str, Any]:
    """SET clause of an ORM UPDATE as attribute key -> value (bind values unwrapped)."""

    statement = execute_state.statement
    pairs: list[tuple[Any, Any]] = list(getattr(statement, "_ordered_values", None) or ())
    pairs.extend((getattr(statement, "_values", None) or {}).items())
    if isinstance(execute_state.parameters, Mapping):
        pairs.extend(execute_state.parameters.items())

    assigned: dict[str, Any] = {}
    for key, value in pairs:
        name = key if isinstance(key, str) else getattr(key, "key", None)
        if name is None:
            continue
        if isinstance(value, BindParameter):
            value = value.effective_value
        assigned[name] = value
    return assigned


def _check_bulk_update(execute_state: ORMExecuteState) -> None:
    """
    Check the new values of an ORM UPDATE.

    The WHERE clause is narrowed to rows the principal may write, but the SET
    clause must not move those rows out of scope either. Bulk UPDATE by primary
    key (a list of parameter sets) is only allowed for unconditional access.
    """

    mapper = execute_state.bind_mapper
    entity = getattr(mapper.class_, "__authz_entity__", None) if mapper is not None else None
    if entity is None:
        return

    authz = get_context(execute_state.session)
    decision = _decide(authz, entity, Operation.WRITE)
    if decision.effect is not Effect.ALLOW_WITH_FILTER or decision.predicate is None:
        # ALLOW: unrestricted. DENY: the WHERE clause matches nothing.
        return

    if isinstance(execute_state.parameters, list) and execute_state.parameters:
        raise AccessDenied(entity.value, Operation.WRITE.value)

    column = decision.predicate.column
    assigned = _assigned_values(execute_state)
    if column not in assigned:
        return

    value = assigned[column]
    if isinstance(value, ClauseElement) or not _decide(authz, entity, Operation.WRITE, {column: value}).allowed:
        logger.info("Denied bulk %s moving %s.%s out of scope", Operation.WRITE.value, entity.value, column)
        raise AccessDenied(entity.value, Operation.WRITE.value)


def _persisted_row(obj: Any) -> dict[str, Any]:
    """Column values as last loaded from the database (before pending changes)."""

    state = inspect(obj)
    row: dict[str, Any] = {}
    missing: list[str] = []
    for prop in state.mapper.column_attrs:
        history = state.attrs[prop.key].history
        if history.deleted:
            row[prop.key] = history.deleted[0]
        elif history.unchanged:
            row[prop.key] = history.unchanged[0]
        else:
            # Expired before it was overwritten; reload what is stored.
            row[prop.key] = None
            missing.append(prop.key)

    if missing and state.identity is not None and state.session is not None:
        model = state.mapper.class_
        stmt = select(*(getattr(model, key) for key in missing)).where(
            *(column == value for column, value in zip(state.mapper.primary_key, state.identity))
        )
        with state.session.no_autoflush:
            stored = state.session.execute(stmt).one_or_none()
        if stored is not None:
            row.update(zip(missing, stored))
    return row


def _enforce(authz: AuthzContext | None, obj: Any, operation: Operation, row: Any) -> None:
    entity = getattr(type(obj), "__authz_entity__", None)
    if entity is None:
        return
    if not _decide(authz, entity, operation, row).allowed:
        logger.info("Denied %s on %s", operation.value, entity.value)
        raise AccessDenied(entity.value, operation.value)


@event.listens_for(Session, "before_flush")
def _enforce_mutation_policy(session: Session, flush_context: Any, instances: Any) -> None:
    """
    Per-row checks for pending changes.

    - new rows: WRITE against the new values
    - modified rows: WRITE against both the persisted and the new values,
      so a row can neither be edited outside scope nor moved out of it
    - deleted rows: DELETE against the persisted values
    """

    authz = get_context(session)

    for obj in session.new:
        _enforce(authz, obj, Operation.WRITE, obj)

    for obj in session.dirty:
        if not session.is_modified(obj):
            continue
        _enforce(authz, obj, Operation.WRITE, _persisted_row(obj))
        _enforce(authz, obj, Operation.WRITE, obj)

    for obj in session.deleted:
        _enforce(authz, obj, Operation.DELETE, _persisted_row(obj))


def protected_tables() -> dict[Entity, str]:
    return {entity: model.__tablename__ for model, entity in protected_models()}
