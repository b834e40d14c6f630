"""Per-student quiz lifecycle.

A session walks FORM -> GENERATING -> QUIZ -> GRADING -> RESULTS and back to
FORM on retake. Generation and grading failures send it back to FORM and QUIZ
respectively with a readable ``error``; nothing is persisted.
"""

from __future__ import annotations
import asyncio
import logging
import time
import uuid
from datetime import datetime
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Literal, Mapping, Optional

from .encoder import UploadedDocument, encode_document
from .errors import GenerationError, GradingError, InvalidTransitionError, SessionNotFoundError, ValidationError
from .grader import AnswerGrader
from .quiz_generator import QuizGenerator
from .results import build_result
from .schemas import AppState, GradingOutcome, QuizQuestion, QuizResult, StudentInfo

logger = logging.getLogger(__name__)


GradingPolicy = Literal["all_or_nothing", "partial"]

MISSING_FIELDS_MESSAGE = "All fields and a PDF file are required."
WRONG_TYPE_MESSAGE = "Please upload a valid PDF file."
INCOMPLETE_ANSWERS_MESSAGE = "Please answer all questions before submitting."


class QuizSession:
	def __init__(
		self,
		generator: QuizGenerator,
		grader: AnswerGrader,
		*,
		accepted_media_types: Iterable[str] = ("application/pdf",),
		max_upload_bytes: int = 0,
		grading_policy: GradingPolicy = "all_or_nothing",
		clock: Callable[[], datetime] = datetime.now,
	) -> None:
		self.generator = generator
		self.grader = grader
		self.accepted_media_types = frozenset(accepted_media_types)
		self.max_upload_bytes = max_upload_bytes
		self.grading_policy = grading_policy
		self._clock = clock
		self.state = AppState.FORM
		self.student_info: Optional[StudentInfo] = None
		self.questions: Optional[List[QuizQuestion]] = None
		self.answers: Optional[Mapping[int, str]] = None
		self.result: Optional[QuizResult] = None
		self.error: Optional[str] = None

	@property
	def is_busy(self) -> bool:
		return self.state in (AppState.GENERATING, AppState.GRADING)

	def _require_state(self, expected: AppState, action: str) -> None:
		if self.state != expected:
			raise InvalidTransitionError(f"Cannot {action} while the session is in {self.state.value}")

	def validate_form(self, info: StudentInfo, document: Optional[UploadedDocument]) -> None:
		fields = (info.name, info.book_title, info.page_range)
		if any(not f.strip() for f in fields) or document is None or not document.content:
			raise ValidationError(MISSING_FIELDS_MESSAGE)
		if document.media_type not in self.accepted_media_types:
			raise ValidationError(WRONG_TYPE_MESSAGE)
		if self.max_upload_bytes > 0 and document.size > self.max_upload_bytes:
			limit_mb = self.max_upload_bytes / (1024 * 1024)
			raise ValidationError(f"The file is too large; the limit is {limit_mb:g}MB.")

	async def submit_form(self, info: StudentInfo, document: Optional[UploadedDocument]) -> None:
		self._require_state(AppState.FORM, "submit the form")
		self.validate_form(info, document)

		self.state = AppState.GENERATING
		self.error = None
		self.student_info = info
		try:
			encoded = await encode_document(document)
			questions = await self.generator.generate(encoded)
		except GenerationError as e:
			logger.warning("Quiz generation failed for %r: %s", info.book_title, e)
			self._abort_generation(str(e))
			return
		except Exception as e:
			logger.exception("Unexpected error while generating quiz for %r", info.book_title)
			self._abort_generation(f"Unexpected error: {e}")
			return
		except BaseException:
			# Cancelled mid-request; leave the session usable before propagating
			self._abort_generation("The request was interrupted.")
			raise
		self.questions = questions
		self.state = AppState.QUIZ

	def _abort_generation(self, reason: str) -> None:
		self.error = f"Failed to generate quiz. {reason}"
		self.student_info = None
		self.questions = None
		self.state = AppState.FORM

	def validate_answers(self, answers: Mapping[int, str]) -> None:
		expected = {q.id for q in self.questions or []}
		if set(answers) != expected or any(not str(a).strip() for a in answers.values()):
			raise ValidationError(INCOMPLETE_ANSWERS_MESSAGE)

	async def submit_quiz(self, answers: Mapping[int, str]) -> None:
		self._require_state(AppState.QUIZ, "submit the quiz")
		self.validate_answers(answers)

		self.answers = MappingProxyType(dict(answers))
		self.state = AppState.GRADING
		self.error = None
		try:
			outcomes, ungraded = await self._grade_all(self.answers)
			result = build_result(
				self.student_info,
				self.questions,
				self.answers,
				outcomes,
				ungraded=ungraded,
				clock=self._clock,
			)
		except GradingError as e:
			logger.warning("Grading failed: %s", e)
			self._abort_grading(str(e))
			return
		except Exception as e:
			logger.exception("Unexpected error while grading quiz")
			self._abort_grading(f"Unexpected error: {e}")
			return
		except BaseException:
			self._abort_grading("The request was interrupted.")
			raise
		self.result = result
		self.answers = None
		self.state = AppState.RESULTS
		logger.info("Quiz graded: %d/%d", self.result.score, self.result.total)

	def _abort_grading(self, reason: str) -> None:
		# Answers stay on the session so the student can resubmit them
		self.error = f"Failed to grade quiz. {reason}"
		self.state = AppState.QUIZ

	async def _grade_all(self, answers: Mapping[int, str]) -> tuple[List[GradingOutcome], Dict[int, str]]:
		questions = self.questions or []
		settled = await asyncio.gather(
			*(self.grader.grade(q, answers.get(q.id, "")) for q in questions),
			return_exceptions=True,
		)
		outcomes: List[GradingOutcome] = []
		ungraded: Dict[int, str] = {}
		for q, item in zip(questions, settled):
			if isinstance(item, Exception) and not isinstance(item, GradingError):
				logger.error("Unexpected error while grading question %d", q.id, exc_info=item)
				item = GradingError(f"Unexpected error: {item}")
			if isinstance(item, GradingError):
				if self.grading_policy == "all_or_nothing":
					raise item
				ungraded[q.id] = str(item)
				outcomes.append(GradingOutcome(is_correct=False))
			elif isinstance(item, BaseException):
				raise item
			else:
				outcomes.append(item)
		return outcomes, ungraded

	def retake(self) -> None:
		self._require_state(AppState.RESULTS, "retake the quiz")
		self.state = AppState.FORM
		self.student_info = None
		self.questions = None
		self.answers = None
		self.result = None
		self.error = None


class SessionStore:
	"""In-memory registry of independent sessions.

	Sessions idle for longer than ``ttl_seconds`` are purged whenever a session
	is created or looked up; when ``max_sessions`` is reached the least recently
	used session makes room for the new one. A value <= 0 disables either limit.
	"""

	def __init__(
		self,
		factory: Callable[[], QuizSession],
		*,
		ttl_seconds: float = 0,
		max_sessions: int = 0,
		clock: Callable[[], float] = time.monotonic,
	) -> None:
		self._factory = factory
		self.ttl_seconds = ttl_seconds
		self.max_sessions = max_sessions
		self._clock = clock
		# session_id -> (session, last touched)
		self._sessions: Dict[str, tuple[QuizSession, float]] = {}

	def purge_expired(self) -> int:
		if self.ttl_seconds <= 0:
			return 0
		threshold = self._clock() - self.ttl_seconds
		dead = [sid for sid, (_, touched) in self._sessions.items() if touched < threshold]
		for sid in dead:
			self._sessions.pop(sid, None)
		if dead:
			logger.info("Purged %d idle session(s)", len(dead))
		return len(dead)

	def create(self) -> tuple[str, QuizSession]:
		self.purge_expired()
		if self.max_sessions > 0:
			while len(self._sessions) >= self.max_sessions:
				oldest = min(self._sessions, key=lambda sid: self._sessions[sid][1])
				self._sessions.pop(oldest)
				logger.info("Session limit reached; evicted %s", oldest)
		session_id = uuid.uuid4().hex
		session = self._factory()
		self._sessions[session_id] = (session, self._clock())
		return session_id, session

	def get(self, session_id: str) -> QuizSession:
		self.purge_expired()
		entry = self._sessions.get(session_id)
		if entry is None:
			raise SessionNotFoundError("Session not found")
		session = entry[0]
		self._sessions[session_id] = (session, self._clock())
		return session

	def discard(self, session_id: str) -> None:
		if self._sessions.pop(session_id, None) is None:
			raise SessionNotFoundError("Session not found")

	def __len__(self) -> int:
		return len(self._sessions)
