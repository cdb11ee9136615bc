"""
Render PostgreSQL row-level security policies from the role hierarchy.

This is a second, storage-level layer. The application-level evaluator is the
primary enforcement point and where test coverage lives; the statements produced
here mirror the same table so the two cannot drift apart.

The session helpers are fail-closed: an unset `rls.*` setting yields NULL, and
NULL never matches a policy (no implicit system or "user" fallback).
"""

from __future__ import annotations

from saddle_authz.security.hierarchy import (
    ALL_OPERATIONS,
    Entity,
    HierarchyRule,
    Operation,
    PredicateTemplate,
    RoleHierarchy,
    scope_column,
)
from saddle_authz.security.principal import SYSTEM_USER_ID, Role

_SETTING_FUNCTIONS = {
    "authz_user_id": "rls.user_id",
    "authz_user_role": "rls.user_role",
    "authz_factory_id": "rls.factory_id",
    "authz_fitter_id": "rls.fitter_id",
}

_SCOPE_FUNCTION = {
    PredicateTemplate.OWN_BY_FITTER: "authz_fitter_id()",
    PredicateTemplate.OWN_BY_FACTORY: "authz_factory_id()",
    PredicateTemplate.OWN_BY_USER: "authz_user_id()",
    PredicateTemplate.SELF_CREDENTIAL_ONLY: "authz_user_id()",
    PredicateTemplate.READ_ONLY_OWN_LOGS: "authz_user_id()",
}

_COMMANDS = {
    Operation.READ: ("SELECT",),
    Operation.WRITE: ("INSERT", "UPDATE"),
    Operation.DELETE: ("DELETE",),
}


def render_helper_functions() -> list[str]:
    statements = []
    for name, setting in _SETTING_FUNCTIONS.items():
        statements.append(
            f"CREATE OR REPLACE FUNCTION {name}() RETURNS INTEGER AS $$ "
            f"SELECT NULLIF(current_setting('{setting}', true), '')::INTEGER "
            f"$$ LANGUAGE sql STABLE"
        )
    return statements


def _commands(operations: frozenset[Operation]) -> list[str]:
    if operations == ALL_OPERATIONS:
        return ["ALL"]
    commands: list[str] = []
    for operation in Operation:
        if operation in operations:
            commands.extend(_COMMANDS[operation])
    return commands


def _predicate(rule: HierarchyRule) -> str | None:
    role_check = f"authz_user_role() = {int(rule.role)}"
    if rule.template is PredicateTemplate.ALL:
        return role_check
    column = scope_column(rule.entity, rule.template)
    function = _SCOPE_FUNCTION.get(rule.template)
    if column is None or function is None:
        return None
    return f"{role_check} AND {column} = {function}"


def _policy(name: str, table: str, command: str, predicate: str) -> str:
    if command == "INSERT":
        clause = f"WITH CHECK ({predicate})"
    elif command in ("ALL", "UPDATE"):
        clause = f"USING ({predicate}) WITH CHECK ({predicate})"
    else:
        clause = f"USING ({predicate})"
    return f'CREATE POLICY {name} ON "{table}" FOR {command} {clause}'


def render_policy_statements(hierarchy: RoleHierarchy, tables: dict[Entity, str]) -> list[str]:
    """
    Full DDL for the given entity -> table map: helpers, RLS switches and policies.

    Statements are returned, never executed.
    """

    statements = render_helper_functions()

    for entity, table in sorted(tables.items(), key=lambda item: item[0].value):
        statements.append(f'ALTER TABLE "{table}" ENABLE ROW LEVEL SECURITY')
        statements.append(_policy(f"system_bypass_{table}", table, "ALL", f"authz_user_id() = {SYSTEM_USER_ID}"))
        statements.append(
            _policy(f"supervisor_all_{table}", table, "ALL", f"authz_user_role() = {int(Role.SUPERVISOR)}")
        )

        for role in Role:
            if role == Role.SUPERVISOR:
                continue
            rule = hierarchy.lookup(role, entity)
            if rule.template is PredicateTemplate.DENY_ALL or not rule.operations:
                continue
            predicate = _predicate(rule)
            if predicate is None:
                continue
            for command in _commands(rule.operations):
                suffix = "" if command == "ALL" else f"_{command.lower()}"
                name = f"{role.name.lower()}_{rule.template.value}_{table}{suffix}"
                statements.append(_policy(name, table, command, predicate))

    return statements
