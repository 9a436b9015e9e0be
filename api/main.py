"""
Spool Dialogue API - FastAPI Application

Hosts dialogue sessions over HTTP: each session owns a Dialogue and its
in-flight run, and clients pull results one request at a time.

Run with: uvicorn api.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes.health import router as health_router
from api.routes.sessions import SessionStore, router as sessions_router

logger = logging.getLogger("spool.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Spool dialogue API starting...")
    yield
    stopped = app.state.sessions.clear()
    logger.info("Spool dialogue API shutting down, stopped %d session(s)", stopped)


app = FastAPI(
    title="Spool Dialogue API",
    description="Pull-based HTTP host for compiled dialogue programs",
    version="1.0.0",
    lifespan=lifespan,
)
app.state.sessions = SessionStore()

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health_router, tags=["Health"])
app.include_router(sessions_router, prefix="/api/v1", tags=["Sessions"])


@app.get("/")
async def root():
    """API root endpoint."""
    return {
        "name": "Spool Dialogue API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
