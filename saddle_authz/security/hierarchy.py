"""
Role hierarchy: the static (role, entity) -> predicate template table.

Key ideas:
- Load YAML once at startup and validate it (pydantic), then freeze it.
- Exactly one rule per (role, entity). Duplicates are a configuration error.
- SUPERVISOR is implicit: ALL on every entity, never configured.
- Anything not configured is DENY_ALL.

This module is pure Python (no FastAPI, no database). Lookups are plain dict reads
on an immutable mapping, so concurrent readers need no locking.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from saddle_authz.security.errors import RoleHierarchyError
from saddle_authz.security.principal import Role

logger = logging.getLogger(__name__)

SUPPORTED_VERSIONS = frozenset({1})


class Entity(str, Enum):
    CREDENTIAL = "credential"
    CUSTOMER = "customer"
    ORDER = "order"
    FITTER = "fitter"
    FACTORY = "factory"
    FACTORY_EMPLOYEE = "factory_employee"
    LOG_ENTRY = "log_entry"


class Operation(str, Enum):
    READ = "read"
    WRITE = "write"
    DELETE = "delete"


class PredicateTemplate(str, Enum):
    ALL = "all"
    OWN_BY_FITTER = "own_by_fitter"
    OWN_BY_FACTORY = "own_by_factory"
    OWN_BY_USER = "own_by_user"
    SELF_CREDENTIAL_ONLY = "self_credential_only"
    READ_ONLY_OWN_LOGS = "read_only_own_logs"
    DENY_ALL = "deny_all"


ALL_OPERATIONS = frozenset(Operation)

# Templates that can never grant more than these operations, whatever the config says.
_TEMPLATE_OPERATION_CEILING: dict[PredicateTemplate, frozenset[Operation]] = {
    PredicateTemplate.READ_ONLY_OWN_LOGS: frozenset({Operation.READ}),
    PredicateTemplate.DENY_ALL: frozenset(),
}

# Column on each entity that a scoped template compares against the principal.
SCOPE_COLUMNS: Mapping[tuple[Entity, PredicateTemplate], str] = MappingProxyType(
    {
        (Entity.CUSTOMER, PredicateTemplate.OWN_BY_FITTER): "fitter_id",
        (Entity.CUSTOMER, PredicateTemplate.OWN_BY_FACTORY): "factory_id",
        (Entity.CUSTOMER, PredicateTemplate.OWN_BY_USER): "created_by",
        (Entity.ORDER, PredicateTemplate.OWN_BY_FITTER): "fitter_id",
        (Entity.ORDER, PredicateTemplate.OWN_BY_FACTORY): "factory_id",
        (Entity.ORDER, PredicateTemplate.OWN_BY_USER): "created_by",
        (Entity.FITTER, PredicateTemplate.OWN_BY_FITTER): "id",
        (Entity.FITTER, PredicateTemplate.OWN_BY_USER): "user_id",
        (Entity.FACTORY, PredicateTemplate.OWN_BY_FACTORY): "id",
        (Entity.FACTORY, PredicateTemplate.OWN_BY_USER): "user_id",
        (Entity.FACTORY_EMPLOYEE, PredicateTemplate.OWN_BY_FACTORY): "factory_id",
        (Entity.LOG_ENTRY, PredicateTemplate.OWN_BY_USER): "user_id",
        (Entity.LOG_ENTRY, PredicateTemplate.READ_ONLY_OWN_LOGS): "user_id",
        (Entity.CREDENTIAL, PredicateTemplate.OWN_BY_USER): "user_id",
        (Entity.CREDENTIAL, PredicateTemplate.SELF_CREDENTIAL_ONLY): "user_id",
    }
)

_UNSCOPED_TEMPLATES = frozenset({PredicateTemplate.ALL, PredicateTemplate.DENY_ALL})


def scope_column(entity: Entity, template: PredicateTemplate) -> str | None:
    return SCOPE_COLUMNS.get((entity, template))


# ---- Data structures -----------------------------------------------------------------


@dataclass(frozen=True)
class HierarchyRule:
    """Resolved rule for one (role, entity) pair."""

    role: Role
    entity: Entity
    template: PredicateTemplate
    operations: frozenset[Operation]

    def permits(self, operation: Operation) -> bool:
        return operation in self.operations


class RuleModel(BaseModel):
    role: str
    entity: Entity
    template: PredicateTemplate
    operations: list[Operation] = Field(default_factory=lambda: list(Operation))

    @field_validator("role")
    @classmethod
    def _known_role(cls, value: str) -> str:
        name = value.strip().upper()
        if name not in Role.__members__:
            raise ValueError(f"unknown role {value!r}")
        return name


class RoleHierarchyModel(BaseModel):
    version: int
    rules: list[RuleModel] = Field(default_factory=list)


# ---- Engine --------------------------------------------------------------------------


class RoleHierarchy:
    """
    Immutable (role, entity) -> HierarchyRule table.

    Usage:
        hierarchy = RoleHierarchy.from_yaml(Path("role_hierarchy.yaml"))
        rule = hierarchy.lookup(Role.FITTER, Entity.CUSTOMER)
    """

    def __init__(self, rules: Mapping[tuple[Role, Entity], HierarchyRule], version: int = 1) -> None:
        self._rules = MappingProxyType(dict(rules))
        self._version = version

    @classmethod
    def from_yaml(cls, path: Path) -> RoleHierarchy:
        return load_role_hierarchy(path)

    @classmethod
    def empty(cls) -> RoleHierarchy:
        """A hierarchy that denies every configurable pair (SUPERVISOR still sees all)."""
        return cls({})

    @property
    def version(self) -> int:
        return self._version

    @property
    def rules(self) -> Mapping[tuple[Role, Entity], HierarchyRule]:
        return self._rules

    def lookup(self, role: Role, entity: Entity) -> HierarchyRule:
        if role == Role.SUPERVISOR:
            return HierarchyRule(role=role, entity=entity, template=PredicateTemplate.ALL, operations=ALL_OPERATIONS)

        rule = self._rules.get((role, entity))
        if rule is None:
            return HierarchyRule(role=role, entity=entity, template=PredicateTemplate.DENY_ALL, operations=frozenset())
        return rule


# ---- Loader --------------------------------------------------------------------------


def load_role_hierarchy(path: Path) -> RoleHierarchy:
    """
    Load and validate the role hierarchy YAML from disk.

    Expected shape:

        role_hierarchy:
          version: 1
          rules:
            - role: fitter
              entity: customer
              template: own_by_fitter
            - role: admin
              entity: log_entry
              template: all
              operations: [read]
    """

    raw_text = path.read_text(encoding="utf-8")
    raw: dict[str, Any] = yaml.safe_load(raw_text) or {}

    if "role_hierarchy" not in raw:
        raise RoleHierarchyError(f"Missing top-level 'role_hierarchy' key in config: {path}")

    hierarchy = build_role_hierarchy(raw["role_hierarchy"])
    logger.info("Loaded role hierarchy version=%s rules=%d from %s", hierarchy.version, len(hierarchy.rules), path)
    return hierarchy


def build_role_hierarchy(raw: Any) -> RoleHierarchy:
    try:
        model = RoleHierarchyModel.model_validate(raw)
    except ValidationError as exc:
        raise RoleHierarchyError(f"invalid role hierarchy: {exc}") from exc

    if model.version not in SUPPORTED_VERSIONS:
        raise RoleHierarchyError(f"unsupported role hierarchy version {model.version}")

    rules: dict[tuple[Role, Entity], HierarchyRule] = {}
    for entry in model.rules:
        role = Role[entry.role]
        key = (role, entry.entity)

        if role == Role.SUPERVISOR:
            raise RoleHierarchyError("supervisor has implicit access to every entity and must not be configured")
        if key in rules:
            raise RoleHierarchyError(f"duplicate rule for role {entry.role.lower()!r} on entity {entry.entity.value!r}")
        if entry.template not in _UNSCOPED_TEMPLATES and scope_column(entry.entity, entry.template) is None:
            raise RoleHierarchyError(
                f"template {entry.template.value!r} has no scope column on entity {entry.entity.value!r}"
            )

        operations = frozenset(entry.operations)
        ceiling = _TEMPLATE_OPERATION_CEILING.get(entry.template)
        if ceiling is not None:
            operations &= ceiling

        rules[key] = HierarchyRule(role=role, entity=entry.entity, template=entry.template, operations=operations)

    return RoleHierarchy(rules, version=model.version)
