from __future__ import annotations
import asyncio
import base64
from dataclasses import dataclass
from typing import Protocol

from .schemas import EncodedDocument


@dataclass(frozen=True)
class UploadedDocument:
	"""Raw upload as received from the form, before encoding."""

	filename: str
	media_type: str
	content: bytes

	@property
	def size(self) -> int:
		return len(self.content)


def encode_bytes(content: bytes, media_type: str) -> EncodedDocument:
	return EncodedDocument(data=base64.b64encode(content).decode("ascii"), media_type=media_type)


async def encode_document(document: UploadedDocument) -> EncodedDocument:
	# Large PDFs take a noticeable moment to encode; keep the event loop free
	return await asyncio.to_thread(encode_bytes, document.content, document.media_type)


class Readable(Protocol):
	async def read(self, size: int = -1) -> bytes: ...


async def read_upload(file: Readable, filename: str, media_type: str, limit: int = 0) -> UploadedDocument:
	"""Read an upload, stopping one byte past ``limit`` so oversized files are detected without being buffered whole."""
	content = await file.read(limit + 1 if limit > 0 else -1)
	return UploadedDocument(filename=filename, media_type=media_type, content=content)
