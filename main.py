# backend/main.py

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from db import engine, Base
from errors import ErrorKind, ServiceError
from log_config import setup_logging
from responses import error_response

# IMPORT MODELS so that create_all() sees them
import models

load_dotenv()
setup_logging()
logger = logging.getLogger(__name__)

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables (users, conversations, messages, files)
    Base.metadata.create_all(bind=engine)
    logger.info("Database ready")
    yield


app = FastAPI(
    title="Tax Chat Admin API",
    description="Users, conversations, messages and files of the tax-filing chat service",
    version="1.0.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def root():
    return {"message": "Backend is running"}


@app.get("/health")
def health_check():
    return {"status": "ok"}


# ——————————————————————————————————————————————
# Error envelopes: { success: false, error, code }
@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    logger.info("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.code)
    return error_response(exc.message, exc.code, exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    return error_response(
        first.get("msg", "Invalid request data"),
        ErrorKind.VALIDATION_ERROR.value,
        400,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    # internal details stay in the log
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return error_response("Internal server error", ErrorKind.INTERNAL_ERROR.value, 500)


# ——————————————————————————————————————————————
# Include user, message, conversation, file and stats routers
from user_router import router as user_router
from message_router import router as message_router
from conversation_router import router as conversation_router
from file_router import router as file_router
from stats_router import router as stats_router

app.include_router(user_router)
app.include_router(message_router)
app.include_router(conversation_router)
app.include_router(file_router)
app.include_router(stats_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
