from __future__ import annotations
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse

from ..encoder import UploadedDocument, read_upload
from ..errors import InvalidTransitionError, SessionNotFoundError, ValidationError
from ..schemas import AppState, StudentInfo, SubmitAnswersRequest
from ..session import QuizSession, SessionStore
from ..views import SessionView, render_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quiz", tags=["quiz"])


def get_store(request: Request) -> SessionStore:
	return request.app.state.sessions


def _load(store: SessionStore, session_id: str) -> QuizSession:
	try:
		return store.get(session_id)
	except SessionNotFoundError as e:
		raise HTTPException(status_code=404, detail=str(e))


def _view_response(session_id: str, session: QuizSession, status_code: int = 200, detail: Optional[str] = None) -> JSONResponse:
	body = render_session(session_id, session).model_dump(mode="json")
	if detail is not None:
		body = {"detail": detail, "session": body}
	return JSONResponse(status_code=status_code, content=body)


@router.post("/session", status_code=201, response_model=SessionView)
async def create_session(store: SessionStore = Depends(get_store)):
	session_id, session = store.create()
	logger.info("Created session %s", session_id)
	return render_session(session_id, session)


@router.get("/session/{session_id}", response_model=SessionView)
async def get_session(session_id: str, store: SessionStore = Depends(get_store)):
	return render_session(session_id, _load(store, session_id))


@router.post("/session/{session_id}/form", response_model=SessionView)
async def submit_form(
	session_id: str,
	name: str = Form(""),
	book_title: str = Form(""),
	page_range: str = Form(""),
	file: Optional[UploadFile] = File(None),
	store: SessionStore = Depends(get_store),
):
	session = _load(store, session_id)
	document: Optional[UploadedDocument] = None
	if file is not None and file.filename:
		document = await read_upload(file, file.filename, file.content_type or "", session.max_upload_bytes)
	info = StudentInfo(name=name.strip(), book_title=book_title.strip(), page_range=page_range.strip())
	try:
		await session.submit_form(info, document)
	except ValidationError as e:
		return _view_response(session_id, session, status_code=422, detail=str(e))
	except InvalidTransitionError as e:
		raise HTTPException(status_code=409, detail=str(e))
	if session.state != AppState.QUIZ:
		return _view_response(session_id, session, status_code=502)
	return render_session(session_id, session)


@router.post("/session/{session_id}/answers", response_model=SessionView)
async def submit_answers(session_id: str, req: SubmitAnswersRequest, store: SessionStore = Depends(get_store)):
	session = _load(store, session_id)
	try:
		await session.submit_quiz(req.answers)
	except ValidationError as e:
		return _view_response(session_id, session, status_code=422, detail=str(e))
	except InvalidTransitionError as e:
		raise HTTPException(status_code=409, detail=str(e))
	if session.state != AppState.RESULTS:
		return _view_response(session_id, session, status_code=502)
	return render_session(session_id, session)


@router.post("/session/{session_id}/retake", response_model=SessionView)
async def retake(session_id: str, store: SessionStore = Depends(get_store)):
	session = _load(store, session_id)
	try:
		session.retake()
	except InvalidTransitionError as e:
		raise HTTPException(status_code=409, detail=str(e))
	return render_session(session_id, session)


@router.delete("/session/{session_id}", status_code=204)
async def discard_session(session_id: str, store: SessionStore = Depends(get_store)):
	try:
		store.discard(session_id)
	except SessionNotFoundError as e:
		raise HTTPException(status_code=404, detail=str(e))
