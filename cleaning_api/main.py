import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError, PyMongoError

from .auth import bootstrap_admin
from .config import get_settings
from .database import close_client, ensure_indexes, get_database
from .routers import api_router

settings = get_settings()

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL.upper())
logger = logging.getLogger(__name__)

app = FastAPI(title="Cleaning Service API")


@app.on_event("startup")
async def startup_event():
    db = await get_database()
    try:
        await ensure_indexes(db)
        await bootstrap_admin(db, settings)
    except PyMongoError as e:
        logger.error(f"Failed to prepare MongoDB on startup: {str(e)}")


@app.on_event("shutdown")
async def shutdown_event():
    close_client()
    logger.info("MongoDB client closed")


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    fields = list((exc.details or {}).get("keyValue", {}).keys())
    field = fields[0] if fields else "field"
    logger.warning(f"Duplicate {field} on {request.method} {request.url.path}")
    return JSONResponse(status_code=400, content={"detail": f"Duplicate value for {field}"})


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.get("/")
async def root():
    return {"message": "Cleaning Service API", "docs": "/docs", "health": "/health"}


app.include_router(api_router)


def run():
    uvicorn.run("cleaning_api.main:app", host="0.0.0.0", port=8000)
