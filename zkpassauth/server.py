"""FastAPI service exposing enrollment and proof-based login."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .auth import AuthResult, AuthState, Authenticator, EnrollResult, EnrollState, build_authenticator
from .backend import ProvingBackend
from .config import Settings
from .errors import ErrorKind
from .store import open_store

log = logging.getLogger(__name__)

_STATUS = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.VERIFICATION_FAILED: 401,
    ErrorKind.DUPLICATE_IDENTITY: 409,
    ErrorKind.PROVING_FAILED: 503,
    ErrorKind.STORE_ERROR: 503,
}


class EnrollRequest(BaseModel):
    identity: str
    secret: str


class EnrollResponse(BaseModel):
    success: bool
    identity: Optional[str] = None
    errorKind: Optional[str] = None
    proof: Optional[Dict[str, Any]] = None
    publicOutputs: Optional[List[str]] = None


class AuthenticateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    identity: str
    proof: Dict[str, Any]
    public_outputs: List[str] = Field(alias="publicOutputs")


class AuthenticateResponse(BaseModel):
    success: bool
    cryptographicallyValid: bool
    commitmentMatched: bool
    errorKind: Optional[str] = None


def _authenticator(request: Request) -> Authenticator:
    return request.app.state.authenticator


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed bodies get the same answer as any other InvalidInput.
    log.info("rejected %s body: %d validation errors", request.url.path, len(exc.errors()))
    if request.url.path == "/authenticate":
        result: Any = AuthResult(state=AuthState.AUTH_FAILED, error_kind=ErrorKind.INVALID_INPUT)
    else:
        result = EnrollResult(state=EnrollState.ENROLL_FAILED, error_kind=ErrorKind.INVALID_INPUT)
    return JSONResponse(status_code=_STATUS[ErrorKind.INVALID_INPUT], content=result.to_dict())


def create_app(settings: Settings | None = None, backend: ProvingBackend | None = None) -> FastAPI:
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        store = open_store(settings.store)
        store.open()
        try:
            app.state.authenticator = build_authenticator(settings, store, backend)
            log.info("identity store %s ready", settings.store)
            yield
        finally:
            store.close()

    app = FastAPI(
        title="ZKPassAuth",
        description="Password enrollment and login with zero-knowledge proofs",
        lifespan=lifespan,
    )
    app.add_exception_handler(RequestValidationError, _handle_validation_error)

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/enroll", response_model=EnrollResponse, response_model_exclude_none=True)
    async def enroll(body: EnrollRequest, request: Request) -> Any:
        result = await _authenticator(request).enroll(body.identity, body.secret)
        payload = result.to_dict()
        if not result.success:
            return JSONResponse(status_code=_STATUS[result.error_kind], content=payload)
        # The caller keeps the proof; the server only keeps the commitment.
        payload["proof"] = dict(result.bundle.proof)
        payload["publicOutputs"] = list(result.bundle.public_outputs)
        return EnrollResponse(**payload)

    @app.post("/authenticate", response_model=AuthenticateResponse, response_model_exclude_none=True)
    async def authenticate(body: AuthenticateRequest, request: Request) -> Any:
        result = await _authenticator(request).authenticate(body.identity, body.proof, body.public_outputs)
        payload = result.to_dict()
        if not result.success:
            status = _STATUS[result.error_kind] if result.error_kind is not None else 401
            return JSONResponse(status_code=status, content=payload)
        return AuthenticateResponse(**payload)

    return app


__all__ = [
    "AuthenticateRequest",
    "AuthenticateResponse",
    "EnrollRequest",
    "EnrollResponse",
    "create_app",
]
