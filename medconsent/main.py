"""
medconsent - FastAPI Application
Exposes the consent registry over HTTP with bearer identity tokens
"""

from fastapi import FastAPI, HTTPException, Depends, Header, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager, contextmanager
from typing import Any, Dict, Iterator, List, Optional
import logging
import structlog

from pydantic import BaseModel, Field

from .config import get_registry_config
from .constants import ErrorCodes, SERVICE_NAME, SERVICE_VERSION
from .crypto.jwt import JWTError, extract_bearer_token, verify_identity_token
from .exceptions import RegistryError
from .registry.auth import ContextAuthenticator
from .registry.engine import ConsentRegistry, get_consent_registry

settings = get_registry_config()

logging.basicConfig(level=settings.log_level.upper(), format="%(message)s")

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer() if settings.json_logs
        else structlog.dev.ConsoleRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

# Registry instance; replaced in tests
registry: Optional[ConsentRegistry] = None

STATUS_BY_ERROR_CODE: Dict[str, int] = {
    ErrorCodes.VALIDATION_ERROR: 400,
    ErrorCodes.NOT_AUTHENTICATED: 401,
    ErrorCodes.NOT_AUTHORIZED: 403,
    ErrorCodes.NOT_TOKEN_OWNER: 403,
    ErrorCodes.TOKEN_NOT_FOUND: 404,
    ErrorCodes.CONSENT_REVOKED: 409,
    ErrorCodes.ALREADY_INITIALIZED: 409,
    ErrorCodes.NOT_INITIALIZED: 409,
    ErrorCodes.STORAGE_ERROR: 500,
}


class InitializeRequest(BaseModel):
    admin: str


class MintRequest(BaseModel):
    owner: str
    metadata_uri: str
    consent_type: str
    expiry: int = Field(default=0, description="Seconds timestamp, 0 for no expiry")


class UpdateRequest(BaseModel):
    metadata_uri: str


class TransferRequest(BaseModel):
    to_identity: str
    from_identity: Optional[str] = Field(
        default=None, description="Defaults to the authenticated caller"
    )


def get_registry() -> ConsentRegistry:
    global registry
    if registry is None:
        registry = get_consent_registry()
    return registry


async def get_caller_identity(authorization: Optional[str] = Header(default=None)) -> str:
    """Identity proven by the request's bearer token"""
    try:
        token = extract_bearer_token(authorization)
        return verify_identity_token(token)
    except JWTError as exc:
        raise HTTPException(status_code=401, detail=str(exc))


@contextmanager
def acting_as(reg: ConsentRegistry, identity: str) -> Iterator[None]:
    """Run registry calls with ``identity`` authenticated"""
    authenticator = reg.authenticator
    if not isinstance(authenticator, ContextAuthenticator):
        raise HTTPException(status_code=503, detail="Registry authenticator does not accept request identities")
    with authenticator.authorize(identity):
        yield


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting medconsent registry", version=SERVICE_VERSION)
    get_registry()
    yield
    logger.info("Shutting down medconsent registry")


# Create FastAPI app
app = FastAPI(
    title="medconsent Registry",
    description="Medical consent records with issuer allowlisting and audit trail",
    version=SERVICE_VERSION,
    lifespan=lifespan
)


@app.exception_handler(RegistryError)
async def registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
    status_code = STATUS_BY_ERROR_CODE.get(exc.error_code, 400)
    log = logger.error if status_code >= 500 else logger.warning
    log("Registry call failed", path=request.url.path, error=exc.error_code, message=exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "components": {
            "registry": registry is not None,
        },
    }


# ---------------------------------------------------------------------------
# Bootstrap & issuers
# ---------------------------------------------------------------------------

@app.post("/registry/initialize")
async def initialize_registry(request: InitializeRequest,
                              caller: str = Depends(get_caller_identity),
                              reg: ConsentRegistry = Depends(get_registry)):
    with acting_as(reg, caller):
        reg.initialize(request.admin)
    return {"admin": request.admin}


@app.get("/registry")
async def registry_summary(reg: ConsentRegistry = Depends(get_registry)):
    return {
        "record_count": reg.record_count(),
        "issuers": reg.get_issuers(),
    }


@app.post("/issuers/{identity}")
async def add_issuer(identity: str,
                     caller: str = Depends(get_caller_identity),
                     reg: ConsentRegistry = Depends(get_registry)):
    with acting_as(reg, caller):
        reg.add_issuer(caller, identity)
    return {"identity": identity, "is_issuer": True}


@app.delete("/issuers/{identity}")
async def remove_issuer(identity: str,
                        caller: str = Depends(get_caller_identity),
                        reg: ConsentRegistry = Depends(get_registry)):
    with acting_as(reg, caller):
        reg.remove_issuer(caller, identity)
    return {"identity": identity, "is_issuer": False}


@app.get("/issuers/{identity}")
async def is_issuer(identity: str, reg: ConsentRegistry = Depends(get_registry)):
    return {"identity": identity, "is_issuer": reg.is_issuer(identity)}


# ---------------------------------------------------------------------------
# Consent records
# ---------------------------------------------------------------------------

@app.post("/consents", status_code=201)
async def mint_consent(request: MintRequest,
                       caller: str = Depends(get_caller_identity),
                       reg: ConsentRegistry = Depends(get_registry)):
    with acting_as(reg, caller):
        record_id = reg.mint_consent(
            request.owner, request.metadata_uri, request.consent_type, request.expiry
        )
    return {"record_id": record_id}


@app.put("/consents/{record_id}")
async def update_consent(record_id: int, request: UpdateRequest,
                         caller: str = Depends(get_caller_identity),
                         reg: ConsentRegistry = Depends(get_registry)):
    with acting_as(reg, caller):
        metadata = reg.update_consent(record_id, request.metadata_uri)
    return {"record_id": record_id, "metadata": metadata.model_dump()}


@app.post("/consents/{record_id}/revoke")
async def revoke_consent(record_id: int,
                         caller: str = Depends(get_caller_identity),
                         reg: ConsentRegistry = Depends(get_registry)):
    with acting_as(reg, caller):
        reg.revoke_consent(record_id)
    return {"record_id": record_id, "revoked": True}


@app.post("/consents/{record_id}/transfer")
async def transfer_consent(record_id: int, request: TransferRequest,
                           caller: str = Depends(get_caller_identity),
                           reg: ConsentRegistry = Depends(get_registry)):
    from_identity = request.from_identity or caller
    with acting_as(reg, caller):
        reg.transfer(from_identity, request.to_identity, record_id)
    return {"record_id": record_id, "owner": request.to_identity}


@app.get("/consents/{record_id}/owner")
async def owner_of(record_id: int, reg: ConsentRegistry = Depends(get_registry)):
    return {"record_id": record_id, "owner": reg.owner_of(record_id)}


@app.get("/consents/{record_id}/metadata")
async def get_metadata(record_id: int, reg: ConsentRegistry = Depends(get_registry)):
    return reg.get_metadata(record_id).model_dump()


@app.get("/consents/{record_id}/revoked")
async def is_revoked(record_id: int, reg: ConsentRegistry = Depends(get_registry)):
    return {"record_id": record_id, "revoked": reg.is_revoked(record_id)}


@app.get("/consents/{record_id}/history")
async def get_history(record_id: int, reg: ConsentRegistry = Depends(get_registry)):
    entries: List[Dict[str, Any]] = [
        entry.model_dump(mode="json") for entry in reg.get_history(record_id)
    ]
    return {"record_id": record_id, "history": entries}


@app.get("/consents/{record_id}/valid")
async def is_valid(record_id: int, reg: ConsentRegistry = Depends(get_registry)):
    return {"record_id": record_id, "valid": reg.is_valid(record_id)}


@app.get("/consents/{record_id}/export")
async def export_record(record_id: int, reg: ConsentRegistry = Depends(get_registry)):
    return reg.export_record(record_id)


@app.get("/owners/{identity}/consents")
async def tokens_of_owner(identity: str, reg: ConsentRegistry = Depends(get_registry)):
    return {"owner": identity, "record_ids": reg.tokens_of_owner(identity)}


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
