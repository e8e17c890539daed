"""Account routes."""

from typing import Annotated

from fastapi import APIRouter, Depends

from litwick.repositories.memory import AccountRecord
from litwick.routes.dependencies import get_account_service, get_current_account
from litwick.schemas.account import Account, Dashboard, LedgerEntryList
from litwick.schemas.error import ErrorResponse
from litwick.services.accounts import AccountService

router = APIRouter(tags=["Accounts"])


@router.get("/auth/me", response_model=Account, responses={401: {"model": ErrorResponse}})
async def get_me(
    account: Annotated[AccountRecord, Depends(get_current_account)],
    service: Annotated[AccountService, Depends(get_account_service)],
) -> Account:
    return service.get_account(account)


@router.get("/dashboard", response_model=Dashboard, responses={401: {"model": ErrorResponse}})
async def get_dashboard(
    account: Annotated[AccountRecord, Depends(get_current_account)],
    service: Annotated[AccountService, Depends(get_account_service)],
) -> Dashboard:
    return service.get_dashboard(account)


@router.get(
    "/credits/transactions",
    response_model=LedgerEntryList,
    responses={401: {"model": ErrorResponse}},
)
async def list_credit_transactions(
    account: Annotated[AccountRecord, Depends(get_current_account)],
    service: Annotated[AccountService, Depends(get_account_service)],
) -> LedgerEntryList:
    return service.list_transactions(account)
