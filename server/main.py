# server/main.py

import logging
from contextlib import asynccontextmanager
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

import config
from api import auth, tasks
from core.errors import (
    DuplicateIdentity,
    LoginFailed,
    NotFoundOrForbidden,
    StorageError,
    TaskManagerError,
    Unauthenticated,
    ValidationError,
)
from database import init_db


logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s:%(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not config.JWT_SECRET_KEY:
        raise RuntimeError("JWT_SECRET_KEY is not set")
    init_db()
    logger.info("Database schema ready")
    yield


app = FastAPI(title="Daily Task Manager API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(tasks.router)


# -------------------------------
# Error mapping
# -------------------------------

STATUS_BY_ERROR = [
    (ValidationError, 400),
    (DuplicateIdentity, 400),
    (LoginFailed, 401),
    (Unauthenticated, 401),
    (NotFoundOrForbidden, 404),
]


@app.exception_handler(TaskManagerError)
async def handle_domain_error(request: Request, exc: TaskManagerError):
    if isinstance(exc, Unauthenticated):
        return JSONResponse(
            status_code=401,
            content={"detail": exc.message},
            headers={"WWW-Authenticate": "Bearer"},
        )
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return JSONResponse(status_code=status_code, content={"detail": exc.message})

    logger.error("%s %s failed", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": StorageError.message})


@app.exception_handler(SQLAlchemyError)
async def handle_storage_error(request: Request, exc: SQLAlchemyError):
    logger.error("Storage error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": StorageError.message})


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "path", "query"))
    message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    return JSONResponse(status_code=400, content={"detail": message})


@app.get("/")
def root():
    return {"message": "Welcome to Daily Task Manager API"}


def main() -> None:
    uvicorn.run("main:app", host=config.HOST, port=config.PORT, reload=config.RELOAD)


if __name__ == "__main__":
    main()
