from __future__ import annotations


class QuizAppError(Exception):
	"""Base class for errors raised by the quiz service."""


class ConfigurationError(QuizAppError):
	pass


class ValidationError(QuizAppError):
	"""Local input problem. The session stays in its current state."""


class InvalidTransitionError(QuizAppError):
	pass


class SessionNotFoundError(QuizAppError):
	pass


class UpstreamError(QuizAppError):
	"""The Gemini endpoint failed or answered with an unexpected envelope."""


class GenerationError(QuizAppError):
	pass


class GradingError(QuizAppError):
	pass
