"""Session endpoints: run dialogue one pulled result per request."""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from spool.errors import DialogueError, ProgramLoadError, ProtocolViolationError
from spool.runtime.dialogue import Dialogue, DialogueRun
from spool.runtime.results import OptionSetResult
from spool.runtime.storage import MemoryVariableStore

router = APIRouter()
logger = logging.getLogger("spool.api")

Primitive = Union[bool, float, str, None]


class CreateSessionRequest(BaseModel):
    """Request body for starting a dialogue session."""
    program: Dict[str, Any]
    start_node: Optional[str] = None
    variables: Dict[str, Primitive] = {}
    visited_nodes: List[str] = []


class CreateSessionResponse(BaseModel):
    session_id: str
    digest: str
    nodes: List[str]
    start_node: str


class NextResponse(BaseModel):
    result: Optional[Dict[str, Any]] = None
    finished: bool


class ChooseRequest(BaseModel):
    index: int


class SessionState(BaseModel):
    session_id: str
    current_node: Optional[str] = None
    finished: bool
    awaiting_choice: bool
    variables: Dict[str, Primitive]
    visit_counts: Dict[str, int]
    errors: List[str] = []


@dataclass
class Session:
    session_id: str
    dialogue: Dialogue
    storage: MemoryVariableStore
    run: DialogueRun
    pending_options: Optional[OptionSetResult] = None
    errors: List[str] = field(default_factory=list)

    def state(self) -> SessionState:
        return SessionState(
            session_id=self.session_id,
            current_node=self.dialogue.current_node,
            finished=self.run.finished,
            awaiting_choice=self.pending_options is not None,
            variables=self.storage.to_dict(),
            visit_counts=dict(self.dialogue.visited_node_count),
            errors=list(self.errors),
        )


class SessionStore:
    """In-memory registry of live sessions, owned by the application."""

    def __init__(self):
        self.sessions: Dict[str, Session] = {}

    def add(self, session: Session) -> None:
        self.sessions[session.session_id] = session

    def require(self, session_id: str) -> Session:
        session = self.sessions.get(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail=f"Unknown session {session_id}")
        return session

    def remove(self, session_id: str) -> Session:
        session = self.require(session_id)
        session.dialogue.stop()
        del self.sessions[session_id]
        return session

    def clear(self) -> int:
        count = len(self.sessions)
        for session in self.sessions.values():
            session.dialogue.stop()
        self.sessions.clear()
        return count

    def __len__(self) -> int:
        return len(self.sessions)


def _store(request: Request) -> SessionStore:
    return request.app.state.sessions


@router.post("/sessions", response_model=CreateSessionResponse)
async def create_session(body: CreateSessionRequest, request: Request):
    """Load a program and start running it."""
    session_id = uuid.uuid4().hex
    storage = MemoryVariableStore(body.variables)
    dialogue = Dialogue(storage)
    errors: List[str] = []

    def log_error(message: str) -> None:
        logger.error("[%s] %s", session_id, message)
        errors.append(message)

    dialogue.log_debug_message = lambda message: logger.debug("[%s] %s", session_id, message)
    dialogue.log_error_message = log_error

    try:
        dialogue.load_program(body.program)
    except ProgramLoadError as e:
        raise HTTPException(status_code=422, detail={"message": str(e), "errors": e.errors})

    if body.visited_nodes:
        dialogue.visited_node_names = body.visited_nodes

    start_node = body.start_node or dialogue.config.default_start
    run = dialogue.run(start_node)
    session = Session(session_id, dialogue, storage, run, errors=errors)
    _store(request).add(session)

    return CreateSessionResponse(
        session_id=session_id,
        digest=dialogue.program.digest(),
        nodes=dialogue.all_nodes,
        start_node=start_node,
    )


@router.post("/sessions/{session_id}/next", response_model=NextResponse)
async def next_result(session_id: str, request: Request):
    """Pull the next result of the session's run."""
    session = _store(request).require(session_id)
    if session.pending_options is not None:
        raise HTTPException(status_code=409, detail="Choose an option before continuing")

    try:
        result = next(session.run, None)
    except ProtocolViolationError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except DialogueError as e:
        session.dialogue.stop()
        raise HTTPException(status_code=500, detail=str(e))

    if result is None:
        return NextResponse(result=None, finished=True)
    if isinstance(result, OptionSetResult):
        session.pending_options = result
    return NextResponse(result=result.to_dict(), finished=session.run.finished)


@router.post("/sessions/{session_id}/choose", response_model=SessionState)
async def choose_option(session_id: str, body: ChooseRequest, request: Request):
    """Answer the pending option set."""
    session = _store(request).require(session_id)
    if session.pending_options is None:
        raise HTTPException(status_code=409, detail="No options are waiting for a choice")
    try:
        session.pending_options.choose(body.index)
    except ProtocolViolationError as e:
        raise HTTPException(status_code=409, detail=str(e))
    session.pending_options = None
    return session.state()


@router.get("/sessions/{session_id}", response_model=SessionState)
async def get_session(session_id: str, request: Request):
    """Variables, visit counts and progress of a session."""
    return _store(request).require(session_id).state()


@router.delete("/sessions/{session_id}")
async def delete_session(session_id: str, request: Request):
    """Stop a session's dialogue and forget it."""
    _store(request).remove(session_id)
    return {"session_id": session_id, "deleted": True}
