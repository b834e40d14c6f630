from __future__ import annotations
import base64
import io

import pytest

from reading_quiz.encoder import UploadedDocument, encode_document, read_upload


class RecordingFile:
	def __init__(self, content: bytes) -> None:
		self._buffer = io.BytesIO(content)
		self.requested = []

	async def read(self, size: int = -1) -> bytes:
		self.requested.append(size)
		return self._buffer.read(size)


@pytest.mark.asyncio
async def test_read_stops_one_byte_past_the_limit():
	upload = RecordingFile(b"x" * 1000)

	document = await read_upload(upload, "big.pdf", "application/pdf", limit=10)

	assert upload.requested == [11]
	assert document.size == 11
	assert document.filename == "big.pdf"


@pytest.mark.asyncio
async def test_read_without_limit_takes_everything():
	upload = RecordingFile(b"%PDF-1.4 " * 100)

	document = await read_upload(upload, "chapter.pdf", "application/pdf")

	assert upload.requested == [-1]
	assert document.size == 900


@pytest.mark.asyncio
async def test_encode_document_is_base64():
	document = UploadedDocument(filename="a.pdf", media_type="application/pdf", content=b"%PDF-1.4")

	encoded = await encode_document(document)

	assert encoded.media_type == "application/pdf"
	assert base64.b64decode(encoded.data) == b"%PDF-1.4"
