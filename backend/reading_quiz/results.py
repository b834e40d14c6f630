from __future__ import annotations
from datetime import datetime
from typing import Callable, Dict, Mapping, Optional, Sequence

from .schemas import GradingOutcome, QuizQuestion, QuizResult, StudentInfo


def format_submission_date(moment: datetime) -> str:
	"""Render a timestamp as ``MM/DD/YYYY, h:MM:SS AM`` (en-US, 12-hour clock)."""
	hour = moment.hour % 12 or 12
	meridiem = "AM" if moment.hour < 12 else "PM"
	return f"{moment:%m/%d/%Y}, {hour}:{moment:%M:%S} {meridiem}"


def build_result(
	student_info: StudentInfo,
	questions: Sequence[QuizQuestion],
	answers: Mapping[int, str],
	outcomes: Sequence[GradingOutcome],
	*,
	ungraded: Optional[Mapping[int, str]] = None,
	clock: Callable[[], datetime] = datetime.now,
) -> QuizResult:
	if len(outcomes) != len(questions):
		raise ValueError("one grading outcome is required per question")
	correctness: Dict[int, bool] = {}
	corrections: Dict[int, str] = {}
	for q, outcome in zip(questions, outcomes):
		correctness[q.id] = outcome.is_correct
		if outcome.corrected_spelling:
			corrections[q.id] = outcome.corrected_spelling
	return QuizResult(
		student_info=student_info,
		submission_date=format_submission_date(clock()),
		questions=list(questions),
		student_answers=dict(answers),
		correctness=correctness,
		corrections=corrections,
		ungraded=dict(ungraded or {}),
		score=sum(1 for v in correctness.values() if v),
		total=len(questions),
	)
