"""HTTP route definitions for the account service."""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, StringConstraints, model_validator

from ..domain.account import Account
from ..domain.contracts import LinkRequest, RegistrationInput, UpdateInput
from ..domain.errors import AccountError, ErrorKind, Result
from ..domain.service import AccountService
from ..metrics import record_outcome

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1")

BoundedStr = Annotated[StrictStr, StringConstraints(min_length=1, max_length=40)]

CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}

MAX_BATCH_USERS = 20


class RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class AnonymousRequest(RequestModel):
    """Payload for creating an anonymous browser identity."""

    display_name: BoundedStr = Field(..., alias="displayName")


class RegisterRequest(RequestModel):
    """Payload for registering a named temporary or permanent account."""

    username: BoundedStr
    display_name: BoundedStr = Field(..., alias="displayName")
    temporary: StrictBool
    linked: StrictStr | None = None
    linked_secret: StrictStr | None = Field(default=None, alias="linkedSecret")
    control_secret: StrictStr | None = Field(default=None, alias="controlSecret")

    @model_validator(mode="after")
    def _link_fields_paired(self) -> "RegisterRequest":
        if (self.linked is None) != (self.linked_secret is None):
            raise ValueError("linked and linkedSecret must be supplied together")
        return self

    def to_domain(self) -> RegistrationInput:
        link = None
        if self.linked is not None:
            link = LinkRequest(target_username=self.linked, target_secret=self.linked_secret)
        return RegistrationInput(
            username=self.username,
            display_name=self.display_name,
            temporary=self.temporary,
            link=link,
            control_secret=self.control_secret,
        )


class UpdateRequest(RequestModel):
    """Owner-authenticated changes to a permanent account."""

    username: BoundedStr
    secret: BoundedStr
    display_name: BoundedStr | None = Field(default=None, alias="displayName")
    new_username: BoundedStr | None = Field(default=None, alias="newUsername")
    rotate_secret: StrictBool = Field(default=False, alias="rotateSecret")

    def to_domain(self) -> UpdateInput:
        return UpdateInput(
            username=self.username,
            secret=self.secret,
            display_name=self.display_name,
            new_username=self.new_username,
            rotate_secret=self.rotate_secret,
        )


class VerifyRequest(RequestModel):
    username: BoundedStr
    secret: BoundedStr
    edit: StrictBool = False


class BatchRequest(RequestModel):
    users: list[BoundedStr] = Field(..., max_length=MAX_BATCH_USERS)


class AuthData(RequestModel):
    username: BoundedStr
    secret: BoundedStr


class LoginRequest(RequestModel):
    """Handshake sent by the realtime server on behalf of a connecting client."""

    auth_data: AuthData = Field(..., alias="authData")


class AccountResponse(BaseModel):
    """Owner view of an account, including its secret."""

    model_config = ConfigDict(populate_by_name=True)

    username: str
    secret: str
    kind: str
    linked: str | None
    display_name: str = Field(..., alias="displayName")
    created_at: str = Field(..., alias="createdAt")

    @classmethod
    def from_domain(cls, account: Account) -> "AccountResponse":
        """Build a response model from the domain aggregate."""
        return cls(
            username=account.username,
            secret=account.secret,
            kind=account.kind.value,
            linked=account.linked,
            display_name=account.display_name,
            created_at=account.created_at.isoformat(),
        )


def api_response(status_code: int, body: dict[str, Any], handshake: bool = False) -> JSONResponse:
    """Wrap a payload in the service envelope.

    Direct callers get a ``success`` flag; the realtime-server handshake
    has its own envelope and does not.
    """
    content = dict(body)
    if not handshake:
        content["success"] = status_code == status.HTTP_200_OK
    return JSONResponse(status_code=status_code, content=content, headers=CORS_HEADERS)


def error_response(error: AccountError) -> JSONResponse:
    if error.kind is ErrorKind.database:
        logger.warning("store failure: %s", error.detail)
    return api_response(error.status_code, {"message": error.message})


def _respond(operation: str, result: Result, render) -> JSONResponse:
    record_outcome(operation, result)
    if not result.ok:
        return error_response(result.error)
    return render(result.value)


def _owner_view(account: Account) -> JSONResponse:
    return api_response(status.HTTP_200_OK, AccountResponse.from_domain(account).model_dump(by_alias=True))


def install_error_handlers(app: FastAPI) -> None:
    """Map request validation failures onto the uniform validation error."""

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("rejected %s: %d invalid field(s)", request.url.path, len(exc.errors()))
        return error_response(AccountError(ErrorKind.validation))


def get_service(request: Request) -> AccountService:
    """Resolve the `AccountService` stored on the FastAPI application state."""
    service: AccountService = request.app.state.account_service
    return service


@router.post("/users/anonymous")
def create_anonymous(
    payload: AnonymousRequest,
    service: AccountService = Depends(get_service),
) -> JSONResponse:
    """Create an anonymous identity with a generated username and secret."""
    result = service.create_anonymous(payload.display_name)
    return _respond("anonymous", result, _owner_view)


@router.post("/users/register")
def register(
    payload: RegisterRequest,
    service: AccountService = Depends(get_service),
) -> JSONResponse:
    """Register a named account, reclaiming a temporary name when allowed."""
    result = service.register(payload.to_domain())
    return _respond("register", result, _owner_view)


@router.post("/users/update")
def update(
    payload: UpdateRequest,
    service: AccountService = Depends(get_service),
) -> JSONResponse:
    """Change the display name, secret or username of a permanent account."""
    result = service.update(payload.to_domain())
    return _respond("update", result, _owner_view)


@router.post("/users/verify")
def verify(
    payload: VerifyRequest,
    service: AccountService = Depends(get_service),
) -> JSONResponse:
    result = service.verify(payload.username, payload.secret, payload.edit)
    return _respond(
        "verify",
        result,
        lambda valid: api_response(status.HTTP_200_OK, {"valid": valid}),
    )


@router.post("/users/batch")
def batch(
    payload: BatchRequest,
    service: AccountService = Depends(get_service),
) -> JSONResponse:
    """Return public views for up to twenty usernames."""
    result = service.batch_public(payload.users)

    def _render(read) -> JSONResponse:
        data = [
            {"username": view.username, "linked": view.linked, "displayName": view.display_name}
            for view in read.accounts
        ]
        return api_response(status.HTTP_200_OK, {"data": data, "partial": read.partial})

    return _respond("batch", result, _render)


@router.post("/auth/login")
def login(
    payload: LoginRequest,
    service: AccountService = Depends(get_service),
) -> JSONResponse:
    """Answer the realtime server's auth handshake for a connecting client."""
    result = service.login(payload.auth_data.username, payload.auth_data.secret)

    def _render(account: Account) -> JSONResponse:
        body = {
            "username": account.username,
            "serverData": {"kind": account.kind.value, "linked": account.linked},
            "clientData": {"displayName": account.display_name},
        }
        return api_response(status.HTTP_200_OK, body, handshake=True)

    return _respond("login", result, _render)
