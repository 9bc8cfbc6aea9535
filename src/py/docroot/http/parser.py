import re
from typing import ClassVar, Iterator, TypeAlias

from ..utils.io import LineParser, LineTooLong
from .model import (
	HTTPHeaders,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPRequestLine,
	headername,
)

# What the parser yields as it goes
HTTPAtom: TypeAlias = (
	HTTPRequestLine | HTTPHeaders | HTTPRequest | HTTPProcessingStatus
)

# SEE: https://www.rfc-editor.org/rfc/rfc9110#name-tokens
RE_METHOD = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
RE_PROTOCOL = re.compile(r"^HTTP/\d\.\d$")


class RequestLineParser:
	"""Parses an HTTP request line."""

	__slots__ = ["line", "value"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.value: HTTPRequestLine | None = None

	def flush(self) -> HTTPRequestLine | None:
		res = self.value
		self.reset()
		return res

	def reset(self) -> "RequestLineParser":
		self.line.reset()
		self.value = None
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool | None, int]:
		"""Returns `True` when a line was parsed, `False` when it was
		malformed and `None` when more data is needed."""
		line, read = self.line.feed(chunk, start)
		if line is None:
			return None, read
		elif not line:
			# Robust servers ignore empty lines before the request line
			return None, read
		try:
			ln: str = line.decode("ascii")
		except UnicodeDecodeError:
			return False, read
		parts: list[str] = ln.split(" ")
		if (
			len(parts) != 3
			or not RE_METHOD.match(parts[0])
			or not parts[1]
			or not RE_PROTOCOL.match(parts[2])
		):
			return False, read
		p: list[str] = parts[1].split("?", 1)
		self.value = HTTPRequestLine(
			parts[0], p[0], p[1] if len(p) > 1 else "", parts[2]
		)
		return True, read

	def __str__(self) -> str:
		return f"RequestLineParser({self.value})"


class HeadersParser:
	__slots__ = ["headers", "contentLength", "line"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.headers: dict[str, str] = {}
		self.contentLength: int | None = None

	def flush(self) -> HTTPHeaders:
		res = HTTPHeaders(self.headers, self.contentLength)
		self.reset()
		return res

	def reset(self) -> "HeadersParser":
		self.line.reset()
		self.headers = {}
		self.contentLength = None
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[str | bool | None, int]:
		"""Feeds data from chunk, starting at `start` offset. Returns the
		header name when a header was parsed, `True` on the empty line that
		ends the headers, `False` on a malformed header and `None` when
		more data is needed."""
		line, read = self.line.feed(chunk, start)
		if line is None:
			return None, read
		elif not line:
			return True, read
		# NOTE: Latin-1 never fails, and header values are opaque to us
		ln: str = line.decode("latin-1")
		i = ln.find(":")
		if i <= 0 or ln[0] in " \t":
			return False, read
		h = ln[:i].strip()
		v = ln[i + 1 :].strip()
		if h.lower() == "content-length":
			try:
				self.contentLength = int(v)
			except ValueError:
				return False, read
		name: str = headername(h)
		# Repeated headers are combined, as per RFC 9110 §5.3
		self.headers[name] = f"{self.headers[name]}, {v}" if name in self.headers else v
		return name, read

	def __str__(self) -> str:
		return f"HeadersParser({self.headers})"


class HTTPParser:
	"""A stateful HTTP request parser. Request bodies are not parsed: the
	server only answers bodiless methods and closes the connection after
	each response."""

	MAX_HEADERS: ClassVar[int] = 100

	def __init__(self) -> None:
		self.requestLine: RequestLineParser = RequestLineParser()
		self.headers: HeadersParser = HeadersParser()
		self.parser: RequestLineParser | HeadersParser = self.requestLine
		self.line: HTTPRequestLine | None = None
		self.count: int = 0

	def reset(self) -> "HTTPParser":
		self.requestLine.reset()
		self.headers.reset()
		self.parser = self.requestLine
		self.line = None
		self.count = 0
		return self

	def feed(self, chunk: bytes) -> Iterator[HTTPAtom]:
		size: int = len(chunk)
		offset: int = 0
		while offset < size:
			try:
				res, read = self.parser.feed(chunk, offset)
			except LineTooLong:
				yield HTTPProcessingStatus.BadFormat
				return
			offset += read
			if res is None:
				continue
			elif res is False:
				yield HTTPProcessingStatus.BadFormat
				return
			elif self.parser is self.requestLine:
				self.line = self.requestLine.flush()
				if self.line:
					yield self.line
					self.parser = self.headers
			elif res is True:
				headers = self.headers.flush()
				yield headers
				line = self.line
				self.reset()
				if line:
					yield HTTPRequest(
						line.method, line.path, line.query, headers, line.protocol
					)
				yield HTTPProcessingStatus.Complete
			else:
				self.count += 1
				if self.count > self.MAX_HEADERS:
					yield HTTPProcessingStatus.BadFormat
					return


# EOF
