"""Admin Accounts — listing, registration, update, read and password confirmation.

Invariants:
    - Every route requires an authenticated caller (bearer token)
    - Routes translate between wire schemas and service commands, nothing more:
      role rules live in core/access_gate.py, record rules in services/
    - Listing visibility comes from visible_roles_for_listing(), never from the route

Design Decisions:
    - The subject id is taken as a raw string so malformed ids ("", "undefined")
      reach the service's ValidationError and share the registry error envelope
    - Read is open to every authenticated role unless PROTECT_SUBJECT_READS is set
"""

import logging

from fastapi import APIRouter, Depends, Query

from registry.core.access_gate import require, visible_roles_for_listing
from registry.core.domain_types import Operation
from registry.core.errors import PasswordMismatchError
from registry.infrastructure.auth_tokens import CallerContext
from registry.api.dependencies import (
    get_current_caller,
    get_aggregator,
    get_reconciler,
    get_password_confirmation,
)
from registry.schemas.subject import (
    AccountSummaryResponse,
    ConfirmPasswordRequest,
    MessageResponse,
    RegisterSubjectRequest,
    SubjectResponse,
    UpdateSubjectRequest,
)
from registry.services.aggregation import AccountAggregator
from registry.services.reauthentication import PasswordConfirmation
from registry.services.reconciliation import (
    RegisterSubjectCommand, SubjectReconciler, UpdateSubjectCommand,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


@router.get("", response_model=list[AccountSummaryResponse])
async def list_accounts(
    education_level: str = Query(..., alias="educationLevel", min_length=1),
    caller: CallerContext = Depends(get_current_caller),
    aggregator: AccountAggregator = Depends(get_aggregator),
):
    """List non-student accounts of one education level with decrypted names."""
    require(caller.role, Operation.LIST_ACCOUNTS)
    summaries = await aggregator.list_by_education_level(
        education_level, visible_roles_for_listing(),
    )
    return [
        AccountSummaryResponse(
            subject_id=s.subject_id, first_name=s.first_name, last_name=s.last_name,
        )
        for s in summaries
    ]


@router.post("/register", response_model=MessageResponse)
async def register_subject(
    body: RegisterSubjectRequest,
    caller: CallerContext = Depends(get_current_caller),
    reconciler: SubjectReconciler = Depends(get_reconciler),
):
    """Create a staff subject with empty personal/medical records and an education record."""
    await reconciler.register_subject(caller.role, RegisterSubjectCommand(
        username=body.username,
        password=body.password,
        email=body.email,
        education=body.education.model_dump(),
        first_name=body.first_name,
        last_name=body.last_name,
    ))
    return MessageResponse(message="Register Successful")


@router.patch("/account/{subject_id}", response_model=SubjectResponse)
async def update_subject(
    subject_id: str,
    body: UpdateSubjectRequest,
    caller: CallerContext = Depends(get_current_caller),
    reconciler: SubjectReconciler = Depends(get_reconciler),
):
    """Merge-patch the credential and upsert the education record."""
    supplied = body.model_dump(exclude_unset=True)
    credential, education = await reconciler.update_subject(
        caller.role, subject_id, UpdateSubjectCommand(
            email=supplied.get("email"),
            username=supplied.get("username"),
            password=supplied.get("password"),
            education=supplied.get("education"),
        ),
    )
    return SubjectResponse.from_records(credential, education)


@router.get("/account/{subject_id}", response_model=SubjectResponse)
async def read_subject(
    subject_id: str,
    caller: CallerContext = Depends(get_current_caller),
    reconciler: SubjectReconciler = Depends(get_reconciler),
):
    """Read a subject's credential and education record."""
    credential, education = await reconciler.read_subject(caller.role, subject_id)
    return SubjectResponse.from_records(credential, education)


@router.post("/password", response_model=MessageResponse)
async def confirm_password(
    body: ConfirmPasswordRequest,
    caller: CallerContext = Depends(get_current_caller),
    confirmation: PasswordConfirmation = Depends(get_password_confirmation),
):
    """Re-authenticate a privileged caller with their own password."""
    if not await confirmation.confirm(caller.subject_id, body.admin_password):
        raise PasswordMismatchError()
    return MessageResponse(message="Authentication Successful")
