"""
auth/policy.py -- Role-based authorization gate.

authorize() is the single decision point. It runs strictly after identity
resolution and before a mutating handler executes:

  identity is None          -> Unauthenticated (401), never Forbidden
  role not in allowed_roles -> Forbidden (403)
  otherwise                 -> the identity, unchanged

Per-operation policies are declared as constants below so route modules
reference a name ("who may create a job") instead of restating role lists.

Layer rule: no imports from api/ or jobs/.
"""

from __future__ import annotations

from collections.abc import Iterable

from auth.models import Identity, Role
from core.errors import Forbidden, Unauthenticated

CREATE_JOB: frozenset[Role] = frozenset({Role.recruiter})
APPLY_TO_JOB: frozenset[Role] = frozenset(Role)


def authorize(identity: Identity | None, allowed_roles: Iterable[Role], message: str | None = None) -> Identity:
    if identity is None:
        raise Unauthenticated()
    if identity.role not in frozenset(allowed_roles):
        raise Forbidden(message)
    return identity
