"""Credential store: principals, password hashing and access tokens."""

from .models import AUTH_TABLES_CQL, Principal
from .permissions import PrincipalKind


__all__ = [
    "AUTH_TABLES_CQL",
    "Principal",
    "PrincipalKind",
]
