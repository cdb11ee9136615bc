"""
Policy evaluator: {principal, entity, operation, row?} -> Decision.

Algorithm (first match wins):
1. System principal (user_id == 0) -> ALLOW.
2. SUPERVISOR -> ALLOW.
3. Scope derivation failed for this unit of work -> DENY.
4. Look up the hierarchy rule; operation not permitted by it -> DENY.
5. Template ALL -> ALLOW.
6. Scoped template -> compare the row's scope column with the principal's scope id
   (single row), or return a filter predicate (bulk query). Unset scope id -> DENY.
7. Anything else -> DENY.

Evaluation never raises: any unexpected error is logged and becomes DENY.
Decisions are computed fresh on every call; nothing is cached.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Any, Mapping

from sqlalchemy import ColumnElement

from saddle_authz.security.hierarchy import (
    Entity,
    HierarchyRule,
    Operation,
    PredicateTemplate,
    RoleHierarchy,
    scope_column,
)
from saddle_authz.security.principal import Principal, Role, is_system_principal

logger = logging.getLogger(__name__)


class Effect(str, Enum):
    ALLOW = "allow"
    DENY = "deny"
    ALLOW_WITH_FILTER = "allow_with_filter"


@dataclass(frozen=True)
class ScopePredicate:
    """`column = value`, to be ANDed into a bulk query over the entity."""

    column: str
    value: int

    def to_criteria(self, model: type) -> ColumnElement[bool]:
        return getattr(model, self.column) == self.value


@dataclass(frozen=True)
class Decision:
    effect: Effect
    predicate: ScopePredicate | None = None

    @property
    def allowed(self) -> bool:
        """True for ALLOW and ALLOW_WITH_FILTER."""
        return self.effect is not Effect.DENY

    @classmethod
    def allow_with_filter(cls, predicate: ScopePredicate) -> Decision:
        return cls(Effect.ALLOW_WITH_FILTER, predicate)


ALLOW = Decision(Effect.ALLOW)
DENY = Decision(Effect.DENY)


@dataclass(frozen=True)
class EvaluationRequest:
    principal: Principal
    entity: Entity
    operation: Operation
    # Mapping of column -> value, or an ORM instance. None means "bulk query".
    row: Any = None


def _label(value: Any) -> str:
    return str(getattr(value, "value", value))


def _row_value(row: Any, column: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(column)
    return getattr(row, column, None)


def _expected_scope_value(principal: Principal, template: PredicateTemplate) -> int | None:
    if template is PredicateTemplate.OWN_BY_FITTER:
        return principal.fitter_id
    if template is PredicateTemplate.OWN_BY_FACTORY:
        return principal.factory_id
    if template in (
        PredicateTemplate.OWN_BY_USER,
        PredicateTemplate.SELF_CREDENTIAL_ONLY,
        PredicateTemplate.READ_ONLY_OWN_LOGS,
    ):
        return principal.user_id
    return None


class PolicyEvaluator:
    """
    Table-driven evaluator over a RoleHierarchy.

    Holds no per-request state; a single instance is shared by all units of work.
    """

    def __init__(self, hierarchy: RoleHierarchy) -> None:
        self._hierarchy = hierarchy

    @property
    def hierarchy(self) -> RoleHierarchy:
        return self._hierarchy

    def evaluate(self, request: EvaluationRequest) -> Decision:
        try:
            decision = self._evaluate(request)
        except Exception:
            logger.exception(
                "Authz: evaluation failed, denying entity=%s operation=%s",
                _label(request.entity),
                _label(request.operation),
            )
            return DENY

        logger.debug(
            "Authz: user_id=%s role=%s entity=%s operation=%s row=%s -> %s",
            request.principal.user_id,
            request.principal.role,
            _label(request.entity),
            _label(request.operation),
            "bulk" if request.row is None else "single",
            decision.effect.value,
        )
        return decision

    def authorize(
        self,
        principal: Principal,
        entity: Entity,
        operation: Operation,
        row: Any = None,
    ) -> Decision:
        return self.evaluate(EvaluationRequest(principal=principal, entity=entity, operation=operation, row=row))

    def _evaluate(self, request: EvaluationRequest) -> Decision:
        principal = request.principal

        if is_system_principal(principal):
            return ALLOW

        if principal.role == Role.SUPERVISOR:
            return ALLOW

        if principal.scope_failed:
            return DENY

        rule = self._hierarchy.lookup(principal.role, request.entity)
        if not rule.permits(request.operation):
            return DENY

        if rule.template is PredicateTemplate.ALL:
            return ALLOW

        return self._evaluate_scoped(rule, request)

    def _evaluate_scoped(self, rule: HierarchyRule, request: EvaluationRequest) -> Decision:
        column = scope_column(rule.entity, rule.template)
        if column is None:
            return DENY

        expected = _expected_scope_value(request.principal, rule.template)
        if expected is None:
            return DENY

        if request.row is None:
            return Decision.allow_with_filter(ScopePredicate(column=column, value=expected))

        actual = _row_value(request.row, column)
        if actual is not None and actual == expected:
            return ALLOW
        return DENY
