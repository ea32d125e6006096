import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError

from backspace.api.v1.api import api_router
from backspace.core.config import settings
from backspace.core.logging import setup_logging
from backspace.db.mongo import connect_to_mongo, disconnect_from_mongo
from backspace.utils.billing_validation import (
    AmountExceedsBalance,
    BillingError,
    InsufficientStock,
    InvalidAmount,
    InvalidState,
    ResourceUnavailable,
)

load_dotenv()
setup_logging()

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    InvalidAmount: status.HTTP_400_BAD_REQUEST,
    AmountExceedsBalance: status.HTTP_400_BAD_REQUEST,
    InvalidState: status.HTTP_409_CONFLICT,
    ResourceUnavailable: status.HTTP_409_CONFLICT,
    InsufficientStock: status.HTTP_409_CONFLICT,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    await connect_to_mongo()
    yield
    await disconnect_from_mongo()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    description=settings.DESCRIPTION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BillingError)
async def billing_error_handler(request: Request, exc: BillingError):
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    logger.info("%s %s rejected: %s: %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error": exc.kind},
    )


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    logger.warning("%s %s hit a unique index: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": "Conflicting write, please retry", "error": "DuplicateKey"},
    )


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.PROJECT_NAME}", "currency": settings.CURRENCY}


app.include_router(api_router, prefix=settings.API_V1_STR)


def run():
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "backspace.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_config=None,
    )
