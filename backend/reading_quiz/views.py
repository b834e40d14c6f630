from __future__ import annotations
from typing import Dict, List, Optional

from pydantic import BaseModel

from .schemas import BLANK_MARKER, AppState, QuestionType, QuizResult, StudentInfo
from .session import QuizSession

# Share of correct answers shown as a pass on the results page
PASS_RATIO = 0.7


class QuestionView(BaseModel):
	number: int
	id: int
	type: QuestionType
	prompt: str
	options: Optional[List[str]] = None


class QuizView(BaseModel):
	book_title: str
	questions: List[QuestionView]
	# Answers from a submission whose grading failed, for prefilling the form
	answers: Dict[int, str] = {}


class ResultRow(BaseModel):
	number: int
	id: int
	question: str
	student_answer: str
	is_correct: bool
	correction: Optional[str] = None
	correct_answer: Optional[str] = None
	grading_error: Optional[str] = None


class ResultsView(BaseModel):
	student: StudentInfo
	submission_date: str
	score: int
	total: int
	passed: bool
	rows: List[ResultRow]


class SessionView(BaseModel):
	session_id: str
	state: AppState
	is_loading: bool
	error: Optional[str] = None
	quiz: Optional[QuizView] = None
	results: Optional[ResultsView] = None


def _widen_blank(text: str) -> str:
	return text.replace(BLANK_MARKER, "______", 1)


def render_quiz(session: QuizSession) -> Optional[QuizView]:
	if not session.questions or session.student_info is None:
		return None
	questions = [
		QuestionView(
			number=i,
			id=q.id,
			type=q.type,
			prompt=_widen_blank(q.question),
			options=list(q.options) if q.type == QuestionType.MULTIPLE_CHOICE else None,
		)
		for i, q in enumerate(session.questions, start=1)
	]
	return QuizView(
		book_title=session.student_info.book_title,
		questions=questions,
		answers=dict(session.answers or {}),
	)


def render_results(result: QuizResult) -> ResultsView:
	rows: List[ResultRow] = []
	for i, q in enumerate(result.questions, start=1):
		is_correct = result.correctness.get(q.id, False)
		rows.append(ResultRow(
			number=i,
			id=q.id,
			question=q.question,
			student_answer=result.student_answers.get(q.id, ""),
			is_correct=is_correct,
			correction=result.corrections.get(q.id) if is_correct else None,
			correct_answer=None if is_correct else q.correct_answer,
			grading_error=result.ungraded.get(q.id),
		))
	return ResultsView(
		student=result.student_info,
		submission_date=result.submission_date,
		score=result.score,
		total=result.total,
		passed=result.total > 0 and result.score / result.total >= PASS_RATIO,
		rows=rows,
	)


def render_session(session_id: str, session: QuizSession) -> SessionView:
	view = SessionView(
		session_id=session_id,
		state=session.state,
		is_loading=session.is_busy,
		error=session.error,
	)
	if session.state in (AppState.QUIZ, AppState.GRADING):
		view.quiz = render_quiz(session)
	elif session.state == AppState.RESULTS and session.result is not None:
		view.results = render_results(session.result)
	return view
