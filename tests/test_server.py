import asyncio
import socket
from pathlib import Path

from docroot.__main__ import main
from docroot.config import Configuration
from docroot.dispatcher import Dispatcher
from docroot.http.model import HTTPRequest, HTTPResponse, HTTPResponseWriter
from docroot.server import AIOSocketServer, ServerOptions

OPTIONS = ServerOptions(logRequests=False, readTimeout=1.0)


def exchange(
	config: Configuration, *chunks: bytes, dispatcher: Dispatcher | None = None
) -> tuple[bytes, object]:
	"""Sends the chunks to a connection handler over a socket pair, closes
	the sending side, and returns what was received along with the
	handler's result."""

	async def run():
		loop = asyncio.get_running_loop()
		server, client = socket.socketpair()
		server.setblocking(False)
		client.setblocking(False)
		task = loop.create_task(
			AIOSocketServer.OnConnection(
				dispatcher or Dispatcher(config), server, loop=loop, options=OPTIONS
			)
		)
		for chunk in chunks:
			await loop.sock_sendall(client, chunk)
			await asyncio.sleep(0)
		client.shutdown(socket.SHUT_WR)
		received: list[bytes] = []
		while chunk := await loop.sock_recv(client, 65_536):
			received.append(chunk)
		client.close()
		return b"".join(received), await task

	return asyncio.run(run())


def test_get(config: Configuration, site: Path) -> None:
	data, res = exchange(config, b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n")
	head, body = data.split(b"\r\n\r\n", 1)
	lines = head.split(b"\r\n")
	assert lines[0] == b"HTTP/1.1 200 OK"
	assert b"Content-Type: text/html" in lines
	assert b"Content-Length: 13" in lines
	assert b"Connection: close" in lines
	assert body == (site / "index.html").read_bytes()
	assert res.status == 200


def test_split_request(config: Configuration) -> None:
	data, _ = exchange(
		config,
		b"HEAD /notes",
		b".txt HTTP/1.1\r\nOrig",
		b"in: http://example.com:8080\r\n\r\n",
	)
	head, body = data.split(b"\r\n\r\n", 1)
	assert head.startswith(b"HTTP/1.1 200 OK")
	assert b"Access-Control-Allow-Origin: http://example.com:8080" in head
	assert b"Content-Length: 11" in head
	assert body == b""


def test_malformed_request(config: Configuration) -> None:
	data, res = exchange(config, b"NOT A REQUEST AT ALL\r\n\r\n")
	assert data.startswith(b"HTTP/1.1 400 Bad Request\r\n")
	assert data.endswith(b"400 Bad Request")
	assert res.status == 400


def test_client_closes_without_request(config: Configuration) -> None:
	data, res = exchange(config)
	assert data == b""
	assert res is None


def test_client_gone_before_response(config: Configuration) -> None:
	async def run():
		loop = asyncio.get_running_loop()
		server, client = socket.socketpair()
		server.setblocking(False)
		client.setblocking(False)
		await loop.sock_sendall(client, b"GET /notes.txt HTTP/1.1\r\n\r\n")
		client.close()
		return await AIOSocketServer.OnConnection(
			Dispatcher(config), server, loop=loop, options=OPTIONS
		)

	# The response can't be delivered, which must not raise
	assert asyncio.run(run()) is None


def test_client_not_reading(config: Configuration, site: Path) -> None:
	(site / "large.bin").write_bytes(b"x" * (16 * 1024 * 1024))

	async def run():
		loop = asyncio.get_running_loop()
		server, client = socket.socketpair()
		server.setblocking(False)
		client.setblocking(False)
		await loop.sock_sendall(client, b"GET /large.bin HTTP/1.1\r\n\r\n")
		try:
			# The client never reads the response
			return await asyncio.wait_for(
				AIOSocketServer.OnConnection(
					Dispatcher(config),
					server,
					loop=loop,
					options=OPTIONS._replace(writeTimeout=0.1),
				),
				timeout=5.0,
			)
		finally:
			client.close()

	assert asyncio.run(run()) is None


class FailingDispatcher(Dispatcher):
	async def process(
		self, request: HTTPRequest, writer: HTTPResponseWriter
	) -> HTTPResponse | None:
		raise RuntimeError("Unexpected")


def test_unexpected_error(config: Configuration) -> None:
	data, res = exchange(
		config,
		b"GET /notes.txt HTTP/1.1\r\n\r\n",
		dispatcher=FailingDispatcher(config),
	)
	assert res is None
	assert data.startswith(b"HTTP/1.1 500 Internal Server Error\r\n")
	assert data.endswith(b"\r\n\r\n500 Internal Server Error")
	# HEAD gets the same response, without its body
	data, _ = exchange(
		config,
		b"HEAD /notes.txt HTTP/1.1\r\n\r\n",
		dispatcher=FailingDispatcher(config),
	)
	assert data.startswith(b"HTTP/1.1 500 Internal Server Error\r\n")
	assert b"Content-Length: 25" in data
	assert data.endswith(b"\r\n\r\n")


def test_cli_configuration_error(tmp_path: Path) -> None:
	assert main(["-c", str(tmp_path / "missing.json")]) == 1
	assert main(["-c", str(tmp_path / "missing.json"), "-r", str(tmp_path / "nope")]) == 1


# EOF
