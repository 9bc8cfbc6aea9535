import asyncio
from pathlib import Path
from typing import Callable

import pytest

from docroot.config import Configuration
from docroot.dispatcher import Dispatcher
from docroot.http.model import HTTPRequest, HTTPResponse, HTTPResponseWriter


class BufferWriter(HTTPResponseWriter):
	"""Collects what would be written to the socket."""

	def __init__(self) -> None:
		super().__init__()
		self.chunks: list[bytes] = []

	@property
	def data(self) -> bytes:
		return b"".join(self.chunks)

	async def _writeBytes(self, chunk: bytes) -> None:
		self.chunks.append(chunk)


@pytest.fixture
def writer() -> BufferWriter:
	return BufferWriter()


@pytest.fixture
def newWriter() -> Callable[[], BufferWriter]:
	return BufferWriter


@pytest.fixture
def site(tmp_path: Path) -> Path:
	"""A client directory with a bit of everything."""
	root = tmp_path / "public"
	root.mkdir()
	(root / "index.html").write_bytes(b"<h1>Home</h1>")
	(root / "about.html").write_bytes(b"<p>About</p>")
	(root / "notes.txt").write_bytes(b"Some notes\n")
	(root / "docs").mkdir()
	(root / "docs" / "index.html").write_bytes(b"<h1>Docs</h1>")
	(root / "docs" / "guide.xhtml").write_bytes(b"<html/>")
	(root / "empty").mkdir()
	return root


@pytest.fixture
def config(site: Path) -> Configuration:
	return Configuration.FromDict(
		{
			"client": {"dir": str(site)},
			"methods": ["GET", "HEAD", "OPTIONS"],
			"cors": {"enabled": True, "domains": ["example.com"]},
		}
	)


@pytest.fixture
def respond(
	config: Configuration,
) -> Callable[..., tuple[HTTPResponse | None, bytes]]:
	"""Returns a function that runs a request through a dispatcher and
	returns the response along with the bytes that were written."""

	def respond(
		method: str,
		path: str,
		headers: dict[str, str] | None = None,
		*,
		configuration: Configuration | None = None,
	) -> tuple[HTTPResponse | None, bytes]:
		w = BufferWriter()
		res = asyncio.run(
			Dispatcher(configuration or config).process(
				HTTPRequest.Create(method, path, headers), w
			)
		)
		return res, w.data

	return respond


# EOF
