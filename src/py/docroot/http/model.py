import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from functools import lru_cache
from typing import NamedTuple

from ..utils.io import DEFAULT_ENCODING
from ..utils.logging import warning
from .status import statusLine, statusMessage

# -----------------------------------------------------------------------------
#
# HELPERS
#
# -----------------------------------------------------------------------------


# Header names come from clients, so the cache must not grow with them
HEADERNAME_CACHE: int = 512


@lru_cache(maxsize=HEADERNAME_CACHE)
def headername(name: str) -> str:
	"""Normalizes the header name as `Kebab-Case`."""
	return "-".join(_.capitalize() for _ in name.lower().split("-"))


# -----------------------------------------------------------------------------
#
# DATA MODEL
#
# -----------------------------------------------------------------------------


class HTTPRequestLine(NamedTuple):
	"""Represents a request status line"""

	method: str
	path: str
	query: str
	protocol: str


class HTTPHeaders(NamedTuple):
	"""Wraps HTTP headers, with names normalized by `headername`."""

	headers: dict[str, str]
	contentLength: int | None = None


class HTTPProcessingStatus(Enum):
	"""Internal parser/processor state management"""

	Processing = 0
	Complete = 2
	Timeout = 10
	NoData = 11
	BadFormat = 12


# -----------------------------------------------------------------------------
#
# REQUESTS
#
# -----------------------------------------------------------------------------


class HTTPRequest:
	"""Represents an HTTP request, which also acts as a factory for
	responses."""

	__slots__ = ["method", "path", "query", "protocol", "_headers"]

	@staticmethod
	def Create(
		method: str,
		path: str,
		headers: dict[str, str] | None = None,
		*,
		query: str = "",
		protocol: str = "HTTP/1.1",
	) -> "HTTPRequest":
		return HTTPRequest(
			method,
			path,
			query,
			HTTPHeaders({headername(k): v for k, v in (headers or {}).items()}),
			protocol,
		)

	def __init__(
		self,
		method: str,
		path: str,
		query: str,
		headers: HTTPHeaders,
		protocol: str = "HTTP/1.1",
	):
		self.method: str = method
		self.path: str = path
		self.query: str = query
		self.protocol: str = protocol
		self._headers: HTTPHeaders = headers

	@property
	def headers(self) -> dict[str, str]:
		return self._headers.headers

	@property
	def isHead(self) -> bool:
		return self.method == "HEAD"

	def header(self, name: str) -> str | None:
		return self._headers.headers.get(headername(name))

	def respond(
		self,
		content: bytes | str | None = None,
		contentType: str | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
	) -> "HTTPResponse":
		"""Creates a response to this request. Responses to `HEAD` are
		computed as for `GET` but don't send their body."""
		return HTTPResponse.Create(
			content=content,
			contentType=contentType,
			status=status,
			headers=headers,
			protocol=self.protocol,
			suppressBody=self.isHead,
		)

	def error(
		self, status: int, headers: dict[str, str] | None = None
	) -> "HTTPResponse":
		"""Creates a response whose body is the status line."""
		return self.respond(statusLine(status), "text/plain", status, headers)

	def __str__(self) -> str:
		return f"Request({self.method} {self.path}{f'?{self.query}' if self.query else ''} {self.headers})"


# -----------------------------------------------------------------------------
#
# RESPONSE
#
# -----------------------------------------------------------------------------


class HTTPResponse:
	"""An HTTP response, fully buffered."""

	__slots__ = ["protocol", "status", "message", "headers", "body", "suppressBody"]

	@staticmethod
	def Create(
		content: bytes | str | None = None,
		contentType: str | None = None,
		headers: dict[str, str] | None = None,
		status: int = 200,
		message: str | None = None,
		protocol: str = "HTTP/1.1",
		suppressBody: bool = False,
	) -> "HTTPResponse":
		"""Factory method to create HTTP response objects."""
		body: bytes | None = (
			content.encode(DEFAULT_ENCODING) if isinstance(content, str) else content
		)
		res = HTTPResponse(
			protocol=protocol,
			status=status,
			message=message or statusMessage(status),
			headers={},
			body=body,
			suppressBody=suppressBody,
		)
		if headers:
			res.setHeaders(headers)
		if contentType is not None:
			res.setHeader("Content-Type", contentType)
		# The length is the one of the full body, even when it's suppressed
		res.setHeader("Content-Length", len(body) if body else 0)
		res.setHeader("Connection", "close")
		return res

	def __init__(
		self,
		protocol: str,
		status: int,
		message: str,
		headers: dict[str, str],
		body: bytes | None = None,
		suppressBody: bool = False,
	):
		self.protocol: str = protocol
		self.status: int = status
		self.message: str = message
		self.headers: dict[str, str] = headers
		self.body: bytes | None = body
		self.suppressBody: bool = suppressBody

	@property
	def contentLength(self) -> int:
		return int(self.headers.get("Content-Length", 0))

	def getHeader(self, name: str) -> str | None:
		return self.headers.get(headername(name))

	def setHeader(self, name: str, value: str | int | None) -> "HTTPResponse":
		if value is None:
			self.headers.pop(headername(name), None)
		else:
			self.headers[headername(name)] = str(value)
		return self

	def setHeaders(self, headers: dict[str, str]) -> "HTTPResponse":
		for k, v in headers.items():
			self.setHeader(k, v)
		return self

	def head(self) -> bytes:
		"""Serializes the status line and headers."""
		lines: list[str] = [f"{self.protocol} {self.status} {self.message}"]
		lines += [f"{k}: {v}" for k, v in self.headers.items()]
		lines.append("")
		lines.append("")
		# NOTE: Header values are latin-1 per RFC 9110
		return "\r\n".join(lines).encode("latin-1", errors="replace")

	@property
	def payload(self) -> bytes:
		"""The bytes to put on the wire."""
		head: bytes = self.head()
		return head if self.suppressBody or not self.body else head + self.body

	def __str__(self) -> str:
		return f"Response({self.protocol} {self.status} {self.message} {self.headers})"


# -----------------------------------------------------------------------------
#
# WRITER
#
# -----------------------------------------------------------------------------


class HTTPResponseWriter(ABC):
	"""Writes exactly one response. Once a response is finalized, any other
	response is refused."""

	__slots__ = ["response", "isClosed"]

	def __init__(self) -> None:
		self.response: HTTPResponse | None = None
		self.isClosed: bool = False

	@property
	def isFinalized(self) -> bool:
		return self.response is not None

	async def finalize(self, response: HTTPResponse) -> bool:
		"""Writes the response, returning `True` when it was sent."""
		if self.response is not None:
			warning(
				"Response already finalized, dropping",
				Sent=self.response.status,
				Dropped=response.status,
			)
			return False
		# Marked before the first write, so that nothing can be finalized
		# while we're suspended writing.
		self.response = response
		try:
			await self._writeBytes(response.payload)
		except (BrokenPipeError, ConnectionResetError) as e:
			warning("Client closed connection", Status=response.status, Reason=str(e))
			self.isClosed = True
			return False
		except asyncio.TimeoutError:
			# The client is not reading, it is dropped like a closed one
			warning("Client stopped reading", Status=response.status)
			self.isClosed = True
			return False
		return True

	@abstractmethod
	async def _writeBytes(self, chunk: bytes) -> None: ...


# EOF
