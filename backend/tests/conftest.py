from __future__ import annotations
import json
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import pytest

from reading_quiz.encoder import UploadedDocument
from reading_quiz.grader import AnswerGrader
from reading_quiz.quiz_generator import QUIZ_SCHEMA, QuizGenerator
from reading_quiz.schemas import StudentInfo
from reading_quiz.session import QuizSession
from reading_quiz.settings import Settings


def make_quiz_payload() -> Dict[str, Any]:
	questions: List[Dict[str, Any]] = []
	for i in range(1, 7):
		questions.append({
			"id": i,
			"type": "MULTIPLE_CHOICE",
			"question": f"Multiple choice question {i}?",
			"options": [f"Option {i}{c}" for c in "ABCD"],
			"correctAnswer": f"Option {i}B",
		})
	for i in range(7, 11):
		questions.append({
			"id": i,
			"type": "FILL_IN_THE_BLANK",
			"question": f"The hero crossed the _____ in chapter {i}.",
			"correctAnswer": f"river{i}",
		})
	return {"questions": questions}


def correct_answers(payload: Optional[Dict[str, Any]] = None) -> Dict[int, str]:
	payload = payload or make_quiz_payload()
	return {q["id"]: q["correctAnswer"] for q in payload["questions"]}


class FakeGemini:
	"""Stands in for GeminiClient; answers quiz requests and grading requests separately."""

	def __init__(
		self,
		quiz: Callable[[], Any] = lambda: json.dumps(make_quiz_payload()),
		grade: Callable[[int], Any] = lambda n: json.dumps({"isCorrect": True}),
	) -> None:
		self.quiz = quiz
		self.grade = grade
		self.calls: List[Dict[str, Any]] = []

	@property
	def grading_calls(self) -> List[Dict[str, Any]]:
		return [c for c in self.calls if c["schema"] is not QUIZ_SCHEMA]

	@property
	def quiz_calls(self) -> List[Dict[str, Any]]:
		return [c for c in self.calls if c["schema"] is QUIZ_SCHEMA]

	async def generate_structured(self, parts, *, response_schema, model=None):
		self.calls.append({"parts": parts, "schema": response_schema, "model": model})
		if response_schema is QUIZ_SCHEMA:
			result = self.quiz()
		else:
			result = self.grade(len(self.grading_calls))
		if isinstance(result, Exception):
			raise result
		return result


@pytest.fixture
def settings() -> Settings:
	return Settings(_env_file=None, gemini_api_key="test-key")


@pytest.fixture
def fake_gemini() -> FakeGemini:
	return FakeGemini()


@pytest.fixture
def student() -> StudentInfo:
	return StudentInfo(name="Jane Doe", book_title="The Great Gatsby", page_range="Pages 15-30")


@pytest.fixture
def pdf() -> UploadedDocument:
	return UploadedDocument(filename="chapter.pdf", media_type="application/pdf", content=b"%PDF-1.4 fake document")


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
	return lambda: datetime(2024, 3, 5, 14, 7, 9)


@pytest.fixture
def make_session(fixed_clock):
	def _make(gemini: FakeGemini, **kwargs: Any) -> QuizSession:
		return QuizSession(
			QuizGenerator(gemini, model="quiz-model"),
			AnswerGrader(gemini, model="grading-model"),
			clock=fixed_clock,
			**kwargs,
		)
	return _make
