"""Access Gate — role-based allow/deny decisions for every admin operation.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Registration and update are admin-only
    - Password confirmation is open to every role except student
    - Listing is open to every authenticated role; row visibility is a separate
      predicate (visible_roles_for_listing) handed to the aggregation engine
    - Subject reads are open unless protect_reads is explicitly requested

Design Decisions:
    - Rule table over if-chains: every rule visible in one place
    - Visibility returned as a frozenset of roles: the join never learns *why*
      a role is hidden, it only filters by the set it was given
"""

from typing import Callable

from registry.core.domain_types import Role, Operation
from registry.core.errors import AuthorizationError

RoleRule = Callable[[Role], bool]


def _admin_only(role: Role) -> bool:
    return role == Role.ADMIN


def _any_role(role: Role) -> bool:
    return True


def _not_student(role: Role) -> bool:
    return role != Role.STUDENT


_RULES: dict[Operation, RoleRule] = {
    Operation.LIST_ACCOUNTS: _any_role,
    Operation.REGISTER_SUBJECT: _admin_only,
    Operation.UPDATE_SUBJECT: _admin_only,
    # Open read kept as found; flip protect_subject_reads to harden.
    Operation.READ_SUBJECT: _any_role,
    Operation.CONFIRM_PASSWORD: _not_student,
}


def is_allowed(role: Role | str, operation: Operation, protect_reads: bool = False) -> bool:
    """Decide whether `role` may perform `operation`. Unknown roles are denied."""
    try:
        role = Role(role)
    except ValueError:
        return False
    if operation == Operation.READ_SUBJECT and protect_reads:
        return _admin_only(role)
    return _RULES[operation](role)


def require(role: Role | str, operation: Operation, protect_reads: bool = False) -> None:
    """Raise AuthorizationError unless `role` may perform `operation`."""
    if not is_allowed(role, operation, protect_reads):
        raise AuthorizationError(str(getattr(role, "value", role)), operation.value)


def visible_roles_for_listing() -> frozenset[Role]:
    """Roles whose accounts appear in aggregated listings."""
    return frozenset(role for role in Role if role != Role.STUDENT)
