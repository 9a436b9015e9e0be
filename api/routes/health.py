"""Liveness and readiness of the dialogue host."""

from collections import Counter

from fastapi import APIRouter, Request

from spool import __version__

router = APIRouter()


@router.get("/health")
async def health_check():
    """Liveness probe; does not touch sessions."""
    return {"status": "healthy", "version": __version__, "service": "spool-dialogue-api"}


@router.get("/health/ready")
async def readiness_check(request: Request):
    """
    Readiness plus a breakdown of live sessions.

    A session is "awaiting_choice" while an option set is unanswered,
    "finished" once its run is exhausted, otherwise "running". Sessions whose
    dialogue reported script errors are counted separately.
    """
    sessions = request.app.state.sessions.sessions.values()
    states = Counter()
    with_errors = 0
    for session in sessions:
        if session.pending_options is not None:
            states["awaiting_choice"] += 1
        elif session.run.finished:
            states["finished"] += 1
        else:
            states["running"] += 1
        if session.errors:
            with_errors += 1

    return {
        "ready": True,
        "sessions": {
            "total": sum(states.values()),
            "running": states["running"],
            "awaiting_choice": states["awaiting_choice"],
            "finished": states["finished"],
            "with_errors": with_errors,
        },
    }
