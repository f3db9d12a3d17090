from fastapi import FastAPI, HTTPException, Body
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from typing import List
import uvicorn
import logging

import config
from .parser import parse
from .schemas import AuthoringMode, ParseResult, SessionStatus, ValidationIssue, Workflow
from .serializer import serialize_workflow
from .session_manager import SessionManager
from .validator import validate, blocking

# Setup Logging
logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="FlowCraft Dual Authoring")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Open documents, in memory only
session_manager = SessionManager()

@app.get("/")
def read_root():
    return {"message": "FlowCraft Dual Authoring API"}

# --- STATELESS CONVERSION ENDPOINTS ---

@app.post("/api/flow/serialize")
def serialize_endpoint(workflow: Workflow):
    return PlainTextResponse(serialize_workflow(workflow), media_type="text/yaml")

@app.post("/api/flow/parse", response_model=ParseResult)
def parse_endpoint(text: str = Body(..., embed=True)):
    return parse(text)

@app.post("/api/flow/validate", response_model=List[ValidationIssue])
def validate_endpoint(text: str = Body(..., embed=True)):
    return validate(text)

# --- SESSION ENDPOINTS ---

@app.get("/api/sessions")
def list_sessions():
    return session_manager.list_sessions()

@app.post("/api/sessions/{doc_id}", response_model=SessionStatus)
def open_session(doc_id: str, workflow: Workflow):
    try:
        session = session_manager.open(doc_id, workflow)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session.status()

@app.get("/api/sessions/{doc_id}", response_model=SessionStatus)
def get_session(doc_id: str):
    try:
        with session_manager.locked(doc_id) as session:
            return session.status()
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

@app.delete("/api/sessions/{doc_id}")
def close_session(doc_id: str):
    try:
        session_manager.close(doc_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"status": "closed", "doc_id": doc_id}

def _ensure_open(doc_id: str):
    if doc_id not in session_manager.sessions:
        raise HTTPException(status_code=404, detail=f"Document {doc_id} is not open")

def _error_status(doc_id: str) -> int:
    # A document closed while the request waited on its lock is a 404
    return 400 if doc_id in session_manager.sessions else 404

def _run(doc_id: str, action):
    """Run one action on a document under its lock and return the new status."""
    _ensure_open(doc_id)
    try:
        with session_manager.locked(doc_id) as session:
            action(session)
            return session.status()
    except ValueError as e:
        raise HTTPException(status_code=_error_status(doc_id), detail=str(e))

@app.put("/api/sessions/{doc_id}/mode", response_model=SessionStatus)
def set_mode(doc_id: str, mode: AuthoringMode = Body(..., embed=True)):
    return _run(doc_id, lambda s: s.set_mode(mode))

@app.put("/api/sessions/{doc_id}/text", response_model=SessionStatus)
def edit_text(doc_id: str, text: str = Body(..., embed=True)):
    return _run(doc_id, lambda s: s.edit(text))

@app.post("/api/sessions/{doc_id}/import", response_model=SessionStatus)
def import_text(doc_id: str, text: str = Body(..., embed=True)):
    return _run(doc_id, lambda s: s.import_text(text))

@app.post("/api/sessions/{doc_id}/undo", response_model=SessionStatus)
def undo(doc_id: str):
    return _run(doc_id, lambda s: s.undo())

@app.post("/api/sessions/{doc_id}/redo", response_model=SessionStatus)
def redo(doc_id: str):
    return _run(doc_id, lambda s: s.redo())

@app.post("/api/sessions/{doc_id}/regenerate", response_model=SessionStatus)
def regenerate(doc_id: str):
    return _run(doc_id, lambda s: s.regenerate())

@app.put("/api/sessions/{doc_id}/workflow", response_model=SessionStatus)
def update_workflow(doc_id: str, workflow: Workflow):
    return _run(doc_id, lambda s: s.update_graph(workflow))

@app.post("/api/sessions/{doc_id}/apply", response_model=SessionStatus)
def apply(doc_id: str):
    _ensure_open(doc_id)
    try:
        with session_manager.locked(doc_id) as session:
            if not session.apply():
                raise HTTPException(status_code=409, detail={
                    "state": session.state.value,
                    "issues": [i.model_dump(mode="json") for i in blocking(session.issues)],
                })
            return session.status()
    except ValueError as e:
        raise HTTPException(status_code=_error_status(doc_id), detail=str(e))

@app.get("/api/sessions/{doc_id}/export")
def export_text(doc_id: str):
    try:
        with session_manager.locked(doc_id) as session:
            content = session.export_text()
            filename = session.export_filename()
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return PlainTextResponse(
        content,
        media_type="text/yaml",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

@app.get("/api/sessions/{doc_id}/workflow", response_model=Workflow)
def get_workflow(doc_id: str):
    try:
        with session_manager.locked(doc_id) as session:
            return session.workflow
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


# Log Buffer
log_buffer = []

class ListHandler(logging.Handler):
    def emit(self, record):
        log_buffer.append(self.format(record))
        if len(log_buffer) > config.LOG_BUFFER_SIZE:
            log_buffer.pop(0)

handler = ListHandler()
formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
handler.setFormatter(formatter)
logging.getLogger().addHandler(handler)

@app.get("/api/logs")
def get_logs():
    return log_buffer

if __name__ == "__main__":
    uvicorn.run("flowcraft.main:app", host=config.API_HOST, port=config.API_PORT, reload=True)
