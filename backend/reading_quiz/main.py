from __future__ import annotations
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from .gemini_client import GeminiClient
from .grader import AnswerGrader
from .logging_config import configure_logging
from .quiz_generator import QuizGenerator, StructuredGenerator
from .routers import health, quiz
from .session import QuizSession, SessionStore
from .settings import Settings, load_settings


def create_app(settings: Optional[Settings] = None, *, client: Optional[StructuredGenerator] = None) -> FastAPI:
	@asynccontextmanager
	async def lifespan(app: FastAPI):
		# A missing credential aborts startup before any request is served
		cfg = settings if settings is not None else load_settings()
		cfg.require_api_key()
		logger = configure_logging(cfg.log_level)
		gemini = client or GeminiClient(cfg)
		generator = QuizGenerator(gemini, model=cfg.gemini_quiz_model)
		grader = AnswerGrader(gemini, model=cfg.gemini_grading_model)

		def new_session() -> QuizSession:
			return QuizSession(
				generator,
				grader,
				accepted_media_types=cfg.accepted_media_types,
				max_upload_bytes=cfg.max_upload_bytes,
				grading_policy=cfg.grading_policy,
			)

		app.state.settings = cfg
		app.state.sessions = SessionStore(
			new_session,
			ttl_seconds=cfg.session_ttl_seconds,
			max_sessions=cfg.max_sessions,
		)
		logger.info("Quiz service ready (provider=%s, grading_policy=%s)", cfg.gemini_provider, cfg.grading_policy)
		try:
			yield
		finally:
			if client is None:
				await gemini.aclose()

	app = FastAPI(title="Reading Quiz API", lifespan=lifespan)
	app.add_middleware(
		CORSMiddleware,
		allow_origins=["*"],
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)
	app.include_router(health.router)
	app.include_router(quiz.router)

	@app.get("/", include_in_schema=False)
	async def redirect_root_to_docs():
		return RedirectResponse(url="/docs")

	return app


app = create_app()


def run() -> None:
	import uvicorn

	settings = load_settings()
	uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
