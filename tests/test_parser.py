from docroot.http.model import (
	HEADERNAME_CACHE,
	HTTPHeaders,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPRequestLine,
	headername,
)
from docroot.http.parser import HTTPParser
from docroot.utils.io import MAX_LINE


def parse(*chunks: bytes) -> list:
	parser = HTTPParser()
	return [atom for chunk in chunks for atom in parser.feed(chunk)]


def test_parses_request() -> None:
	atoms = parse(
		b"GET /docs/index.html?lang=en HTTP/1.1\r\nHost: 127.0.0.1\r\norigin: http://example.com\r\n\r\n"
	)
	assert atoms[0] == HTTPRequestLine("GET", "/docs/index.html", "lang=en", "HTTP/1.1")
	assert isinstance(atoms[1], HTTPHeaders)
	request = atoms[2]
	assert isinstance(request, HTTPRequest)
	assert request.method == "GET"
	assert request.path == "/docs/index.html"
	assert request.query == "lang=en"
	assert request.header("Origin") == "http://example.com"
	assert request.header("host") == "127.0.0.1"
	assert atoms[3] is HTTPProcessingStatus.Complete


def test_parses_split_chunks() -> None:
	atoms = parse(
		b"HEAD /time/5 ",
		b"HTTP/1.1\r\nHost: ",
		b"127.0.0.1\r",
		b"\nConn",
		b"ection: close\r\n",
		b"\r",
		b"\n",
	)
	requests = [_ for _ in atoms if isinstance(_, HTTPRequest)]
	assert len(requests) == 1
	assert requests[0].method == "HEAD"
	assert requests[0].path == "/time/5"
	assert requests[0].headers == {"Host": "127.0.0.1", "Connection": "close"}


def test_skips_leading_empty_lines() -> None:
	atoms = parse(b"\r\nOPTIONS * HTTP/1.1\r\n\r\n")
	assert atoms[0] == HTTPRequestLine("OPTIONS", "*", "", "HTTP/1.1")


def test_combines_repeated_headers() -> None:
	atoms = parse(b"GET / HTTP/1.1\r\nAccept: a\r\naccept: b\r\n\r\n")
	assert atoms[2].header("Accept") == "a, b"


def test_bad_request_line() -> None:
	for line in (
		b"GET\r\n\r\n",
		b"GET /\r\n\r\n",
		b"GET / HTTP/1.1 extra\r\n\r\n",
		b"G(T / HTTP/1.1\r\n\r\n",
		b"GET / FTP/1.0\r\n\r\n",
		b"GET /\xff HTTP/1.1\r\n\r\n",
	):
		assert parse(line)[-1] is HTTPProcessingStatus.BadFormat, line


def test_bad_headers() -> None:
	assert parse(b"GET / HTTP/1.1\r\nNoColon\r\n\r\n")[-1] is HTTPProcessingStatus.BadFormat
	assert (
		parse(b"GET / HTTP/1.1\r\nContent-Length: ten\r\n\r\n")[-1]
		is HTTPProcessingStatus.BadFormat
	)


def test_line_too_long() -> None:
	atoms = parse(b"GET /" + b"a" * (MAX_LINE + 1))
	assert atoms == [HTTPProcessingStatus.BadFormat]


def test_complete_long_line() -> None:
	# The delimiter is there, but the line is still too long
	atoms = parse(b"GET /" + b"a" * MAX_LINE + b" HTTP/1.1\r\n\r\n")
	assert atoms == [HTTPProcessingStatus.BadFormat]


def test_header_names_cache_is_bounded() -> None:
	for i in range(50):
		head = b"".join(b"X-Junk-%d-%d: 1\r\n" % (i, j) for j in range(100))
		atoms = parse(b"GET / HTTP/1.1\r\n" + head + b"\r\n")
		assert isinstance(atoms[-2], HTTPRequest)
		assert "X-Junk-%d-99" % i in atoms[-2].headers
	assert headername.cache_info().currsize <= HEADERNAME_CACHE


# EOF
