DEFAULT_ENCODING: str = "utf8"
EOL: bytes = b"\r\n"
# Longest request or header line we accept, anything above is a bad request.
MAX_LINE: int = 16_384


class LineTooLong(ValueError):
	pass


class LineParser:
	"""Accumulates chunks until an end-of-line delimiter is found."""

	__slots__ = ["buffer", "line", "eol", "offset", "limit"]

	def __init__(self, eol: bytes = EOL, limit: int = MAX_LINE) -> None:
		self.buffer: bytearray = bytearray()
		self.line: bytes | None = None
		self.offset: int = 0
		self.eol: bytes = eol
		self.limit: int = limit

	def reset(self) -> "LineParser":
		self.buffer.clear()
		self.line = None
		self.offset = 0
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bytes | None, int]:
		"""Returns the line that was completed (without its delimiter) and
		how many bytes of `chunk` were consumed from `start`. When the line
		is `None`, the whole remainder of the chunk was buffered."""
		pos = len(self.buffer)
		self.buffer += chunk[start:]
		end = self.buffer.find(self.eol, self.offset)
		if end == -1:
			if len(self.buffer) > self.limit:
				raise LineTooLong(f"Line exceeds {self.limit} bytes")
			self.offset = max(0, len(self.buffer) - len(self.eol) + 1)
			return None, len(chunk) - start
		elif end > self.limit:
			raise LineTooLong(f"Line exceeds {self.limit} bytes")
		else:
			self.line = bytes(self.buffer[:end])
			self.buffer.clear()
			self.offset = 0
			return self.line, (end - pos) + len(self.eol)


# EOF
