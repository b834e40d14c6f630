from __future__ import annotations
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, TypeAdapter, model_validator
from pydantic.alias_generators import to_camel


# Blank marker the quiz writer is asked to put in fill-in-the-blank questions
BLANK_MARKER = "_____"


class AppState(str, Enum):
	FORM = "FORM"
	GENERATING = "GENERATING"
	QUIZ = "QUIZ"
	GRADING = "GRADING"
	RESULTS = "RESULTS"


class QuestionType(str, Enum):
	MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
	FILL_IN_THE_BLANK = "FILL_IN_THE_BLANK"


class _WireModel(BaseModel):
	# Gemini speaks camelCase (correctAnswer); the local API uses snake_case
	model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class StudentInfo(BaseModel):
	model_config = ConfigDict(frozen=True)

	name: str
	book_title: str
	page_range: str


class MultipleChoiceQuestion(_WireModel):
	id: PositiveInt
	type: Literal["MULTIPLE_CHOICE"] = "MULTIPLE_CHOICE"
	question: str
	options: List[str] = Field(min_length=1)
	correct_answer: str


class FillInBlankQuestion(_WireModel):
	id: PositiveInt
	type: Literal["FILL_IN_THE_BLANK"] = "FILL_IN_THE_BLANK"
	question: str
	correct_answer: str


QuizQuestion = Annotated[Union[MultipleChoiceQuestion, FillInBlankQuestion], Field(discriminator="type")]

question_list_adapter: TypeAdapter[List[QuizQuestion]] = TypeAdapter(List[QuizQuestion])


class EncodedDocument(BaseModel):
	model_config = ConfigDict(frozen=True)

	data: str
	media_type: str


class GradingOutcome(BaseModel):
	model_config = ConfigDict(frozen=True)

	is_correct: bool
	corrected_spelling: Optional[str] = None


class QuizResult(BaseModel):
	model_config = ConfigDict(frozen=True)

	student_info: StudentInfo
	submission_date: str
	questions: List[QuizQuestion]
	student_answers: Dict[int, str]
	correctness: Dict[int, bool]
	corrections: Dict[int, str] = Field(default_factory=dict)
	# Only populated under the partial grading policy
	ungraded: Dict[int, str] = Field(default_factory=dict)
	score: int
	total: int

	@model_validator(mode="after")
	def _check_score(self) -> "QuizResult":
		correct = sum(1 for v in self.correctness.values() if v)
		if self.score != correct:
			raise ValueError(f"score {self.score} does not match {correct} correct answers")
		if self.total != len(self.questions):
			raise ValueError(f"total {self.total} does not match {len(self.questions)} questions")
		return self


class SubmitAnswersRequest(BaseModel):
	answers: Dict[int, str]
