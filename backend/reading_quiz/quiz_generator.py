from __future__ import annotations
import json
import logging
import random
from typing import Any, Dict, List, Optional, Protocol

from pydantic import ValidationError as PydanticValidationError

from .errors import GenerationError, UpstreamError
from .schemas import BLANK_MARKER, EncodedDocument, QuestionType, QuizQuestion, question_list_adapter

logger = logging.getLogger(__name__)


MULTIPLE_CHOICE_COUNT = 6
FILL_IN_BLANK_COUNT = 4
QUESTION_COUNT = MULTIPLE_CHOICE_COUNT + FILL_IN_BLANK_COUNT
OPTIONS_PER_QUESTION = 4

# Distractors used when the model leaves out the options of a multiple-choice question
PLACEHOLDER_DISTRACTORS = ["A", "B", "C", "D"]


QUIZ_SCHEMA: Dict[str, Any] = {
	"type": "OBJECT",
	"properties": {
		"questions": {
			"type": "ARRAY",
			"description": f"An array of {QUESTION_COUNT} quiz questions: {MULTIPLE_CHOICE_COUNT} multiple-choice and {FILL_IN_BLANK_COUNT} fill-in-the-blank.",
			"items": {
				"type": "OBJECT",
				"properties": {
					"id": {"type": "NUMBER", "description": f"A unique ID for the question, from 1 to {QUESTION_COUNT}."},
					"type": {"type": "STRING", "enum": [t.value for t in QuestionType]},
					"question": {
						"type": "STRING",
						"description": f"The question text. For fill-in-the-blank, it must include '{BLANK_MARKER}' as a placeholder.",
					},
					"options": {
						"type": "ARRAY",
						"description": f"An array of {OPTIONS_PER_QUESTION} possible answers. Required only for MULTIPLE_CHOICE.",
						"items": {"type": "STRING"},
					},
					"correctAnswer": {"type": "STRING", "description": "The correct answer to the question."},
				},
				"required": ["id", "type", "question", "correctAnswer"],
			},
		},
	},
	"required": ["questions"],
}


class StructuredGenerator(Protocol):
	async def generate_structured(
		self,
		parts: List[Dict[str, Any]],
		*,
		response_schema: Dict[str, Any],
		model: Optional[str] = None,
	) -> str: ...


def _build_quiz_prompt() -> str:
	return (
		"You are an expert quiz creator for students. Based on the content of the provided PDF document, "
		f"create a {QUESTION_COUNT}-question quiz to test reading comprehension.\n\n"
		"The quiz must contain exactly:\n"
		f"1. {MULTIPLE_CHOICE_COUNT} multiple-choice questions.\n"
		f"2. {FILL_IN_BLANK_COUNT} fill-in-the-blank questions.\n\n"
		"Instructions for questions:\n"
		f"- For multiple-choice questions, provide {OPTIONS_PER_QUESTION} distinct options, and one of them must be the correct answer.\n"
		f"- For fill-in-the-blank questions, the question should have a clear blank space indicated by '{BLANK_MARKER}' "
		"and the correct answer should be the word or short phrase that fits in the blank.\n"
		"- Ensure questions are relevant to the main topics and details in the provided text.\n\n"
		"Return the response ONLY as a JSON object that adheres to the provided schema. "
		"Do not include any other text, explanation, or markdown formatting around the JSON object."
	)


def _fallback_options(correct_answer: Any, rng: random.Random) -> List[Any]:
	# Options must stay distinct, so a placeholder matching the answer is skipped
	answer_key = str(correct_answer).strip().casefold()
	distractors = [p for p in PLACEHOLDER_DISTRACTORS if p.casefold() != answer_key]
	options = distractors[: OPTIONS_PER_QUESTION - 1] + [correct_answer]
	rng.shuffle(options)
	return options


def decode_quiz_payload(text: Optional[str], *, rng: Optional[random.Random] = None) -> List[QuizQuestion]:
	"""Decode the raw model output into a validated question list.

	Raises GenerationError when the body is empty, is not JSON, lacks a
	``questions`` array, or any item fails validation. A multiple-choice item
	without ``options`` gets placeholder distractors plus its correct answer in
	random order; that is a tolerance path, the model is asked to always supply
	options.
	"""
	raw = (text or "").strip()
	if not raw:
		raise GenerationError("Empty response from AI.")
	try:
		data = json.loads(raw)
	except ValueError as e:
		raise GenerationError("AI response was not valid JSON.") from e
	if not isinstance(data, dict) or not isinstance(data.get("questions"), list):
		raise GenerationError("Invalid quiz format received from API.")

	rng = rng or random.Random()
	items: List[Any] = []
	for item in data["questions"]:
		if isinstance(item, dict) and item.get("type") == QuestionType.MULTIPLE_CHOICE.value and item.get("options") is None:
			logger.warning("Question %s came back without options; using placeholder distractors", item.get("id"))
			item = {**item, "options": _fallback_options(item.get("correctAnswer"), rng)}
		items.append(item)

	try:
		questions = question_list_adapter.validate_python(items)
	except PydanticValidationError as e:
		raise GenerationError(f"Quiz did not match the expected format ({e.error_count()} problem(s)).") from e

	if not questions:
		raise GenerationError("The quiz came back without any questions.")
	ids = [q.id for q in questions]
	if len(set(ids)) != len(ids):
		raise GenerationError("The quiz contained duplicate question ids.")

	mc = sum(1 for q in questions if q.type == QuestionType.MULTIPLE_CHOICE)
	if len(questions) != QUESTION_COUNT or mc != MULTIPLE_CHOICE_COUNT:
		logger.warning(
			"Expected %d multiple-choice + %d fill-in-the-blank questions, got %d + %d",
			MULTIPLE_CHOICE_COUNT, FILL_IN_BLANK_COUNT, mc, len(questions) - mc,
		)
	for q in questions:
		if q.type == QuestionType.MULTIPLE_CHOICE and len(q.options) != OPTIONS_PER_QUESTION:
			logger.warning("Question %d has %d options instead of %d", q.id, len(q.options), OPTIONS_PER_QUESTION)
	return questions


class QuizGenerator:
	def __init__(self, client: StructuredGenerator, *, model: Optional[str] = None, rng: Optional[random.Random] = None) -> None:
		self.client = client
		self.model = model
		self._rng = rng or random.Random()

	async def generate(self, document: EncodedDocument) -> List[QuizQuestion]:
		parts = [
			{"inline_data": {"mime_type": document.media_type, "data": document.data}},
			{"text": _build_quiz_prompt()},
		]
		try:
			raw = await self.client.generate_structured(parts, response_schema=QUIZ_SCHEMA, model=self.model)
		except UpstreamError as e:
			raise GenerationError(str(e)) from e
		questions = decode_quiz_payload(raw, rng=self._rng)
		logger.info("Generated quiz with %d questions", len(questions))
		return questions
