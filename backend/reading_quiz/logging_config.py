"""Logging configuration helpers for the quiz service."""

from __future__ import annotations

import logging
from logging import Logger


def configure_logging(level: str = "INFO") -> Logger:
	"""Configure basic logging for the service and return the package logger."""
	logging.basicConfig(
		level=getattr(logging, level.upper(), logging.INFO),
		format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
	)
	# Request/response lines from httpx would include the API key in the query string
	logging.getLogger("httpx").setLevel(logging.WARNING)
	return logging.getLogger("reading_quiz")
