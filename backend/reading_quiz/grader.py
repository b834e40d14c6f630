from __future__ import annotations
import json
import logging
from typing import Any, Dict, Optional

from .errors import GradingError, UpstreamError
from .quiz_generator import StructuredGenerator
from .schemas import GradingOutcome, QuestionType, QuizQuestion

logger = logging.getLogger(__name__)


GRADING_SCHEMA: Dict[str, Any] = {
	"type": "OBJECT",
	"properties": {
		"isCorrect": {
			"type": "BOOLEAN",
			"description": "True if the student's answer is considered correct, false otherwise.",
		},
		"correctedSpelling": {
			"type": "STRING",
			"description": (
				"If the student's answer is correct but misspelled, provide the correctly spelled version "
				"of the answer here. Otherwise, omit this field."
			),
		},
	},
	"required": ["isCorrect"],
}


def _build_grading_prompt(student_answer: str, correct_answer: str) -> str:
	return (
		"You are an expert and forgiving teaching assistant. Your task is to grade a \"fill-in-the-blank\" question "
		"with a high degree of tolerance for spelling and grammatical errors.\n\n"
		f"The correct answer is: \"{correct_answer}\"\n"
		f"The student's answer is: \"{student_answer}\"\n\n"
		"Evaluate if the student's answer is semantically and phonetically correct, even if it is spelled incorrectly. "
		"The student's intent and knowledge are more important than their spelling ability.\n\n"
		"Be very lenient. Only mark incorrect if it is completely wrong in meaning or nonsensical.\n\n"
		"If you mark the answer as correct but it was misspelled, provide the correct spelling in a "
		"\"correctedSpelling\" field.\n\n"
		"Return your response ONLY as a JSON object."
	)


def decode_grading_payload(text: Optional[str]) -> GradingOutcome:
	raw = (text or "").strip()
	if not raw:
		raise GradingError("Empty grading response.")
	try:
		data = json.loads(raw)
	except ValueError as e:
		raise GradingError("Could not determine correctness from AI response.") from e
	if not isinstance(data, dict) or not isinstance(data.get("isCorrect"), bool):
		raise GradingError("Could not determine correctness from AI response.")
	corrected = data.get("correctedSpelling")
	corrected = corrected.strip() if isinstance(corrected, str) else ""
	return GradingOutcome(is_correct=data["isCorrect"], corrected_spelling=corrected or None)


class AnswerGrader:
	def __init__(self, client: StructuredGenerator, *, model: Optional[str] = None) -> None:
		self.client = client
		self.model = model

	@staticmethod
	def grade_multiple_choice(student_answer: str, correct_answer: str) -> GradingOutcome:
		return GradingOutcome(is_correct=student_answer.strip().lower() == correct_answer.strip().lower())

	async def grade_fill_in_blank(self, student_answer: str, correct_answer: str) -> GradingOutcome:
		# An unattempted blank is wrong; no need to spend a request on it
		if not student_answer.strip():
			return GradingOutcome(is_correct=False)
		parts = [{"text": _build_grading_prompt(student_answer, correct_answer)}]
		try:
			raw = await self.client.generate_structured(parts, response_schema=GRADING_SCHEMA, model=self.model)
		except UpstreamError as e:
			raise GradingError(str(e)) from e
		try:
			return decode_grading_payload(raw)
		except GradingError:
			logger.error("Failed to parse grading response: %r", raw)
			raise

	async def grade(self, question: QuizQuestion, student_answer: str) -> GradingOutcome:
		if question.type == QuestionType.FILL_IN_THE_BLANK:
			return await self.grade_fill_in_blank(student_answer, question.correct_answer)
		return self.grade_multiple_choice(student_answer, question.correct_answer)
