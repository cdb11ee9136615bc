"""Importing this package registers every mapped class on `Base.metadata`."""

from saddle_authz.models.audit import LogEntry
from saddle_authz.models.business import Customer, Order
from saddle_authz.models.security import Credential, Factory, FactoryEmployee, Fitter

__all__ = [
    "Credential",
    "Customer",
    "Factory",
    "FactoryEmployee",
    "Fitter",
    "LogEntry",
    "Order",
]
