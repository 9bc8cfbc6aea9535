import asyncio
import socket
import threading
from dataclasses import dataclass
from signal import SIGINT, SIGTERM
from typing import Any, Callable, NamedTuple

from .config import Configuration
from .dispatcher import Dispatcher
from .http.model import (
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPResponse,
	HTTPResponseWriter,
)
from .http.parser import HTTPParser
from .http.status import statusLine
from .utils.logging import (
	LogLevel,
	debug,
	error,
	event,
	exception,
	info,
	logged,
	warning,
)


@dataclass(slots=True)
class ServerState:
	isRunning: bool = True

	def stop(self) -> None:
		info("Server stopping…")
		self.isRunning = False

	def onException(
		self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
	) -> None:
		e = context.get("exception")
		if e:
			exception(e)


class ServerOptions(NamedTuple):
	host: str = "0.0.0.0"  # nosec: B104
	port: int = 8000
	backlog: int = 10_000
	# This is the polling timeout for accepting new requests. Every second is
	# good
	polling: float = 1.0
	readsize: int = 4_096
	# How long we wait for the client to send a complete request head
	readTimeout: float = 10.0
	# How long a response may take to be written, a client that does not read
	# it is dropped
	writeTimeout: float = 30.0
	logRequests: bool = True
	condition: Callable[[], bool] | None = None
	stopSignals: bool = True


# Used when there is no parsed request to respond to
BAD_REQUEST: HTTPResponse = HTTPResponse.Create(
	statusLine(400), "text/plain", status=400
)
SERVER_ERROR: HTTPResponse = HTTPResponse.Create(
	statusLine(500), "text/plain", status=500
)


class AIOSocketWriter(HTTPResponseWriter):
	"""Writes the response to an AIO socket."""

	__slots__ = ["client", "loop", "timeout"]

	def __init__(
		self,
		client: "socket.socket",
		loop: asyncio.AbstractEventLoop,
		timeout: float | None = None,
	) -> None:
		super().__init__()
		self.client: socket.socket = client
		self.loop: asyncio.AbstractEventLoop = loop
		self.timeout: float | None = timeout

	async def _writeBytes(self, chunk: bytes) -> None:
		await asyncio.wait_for(
			self.loop.sock_sendall(self.client, chunk), timeout=self.timeout
		)


class AIOSocketServer:
	"""AsyncIO backend using sockets directly."""

	@classmethod
	async def ReadRequest(
		cls,
		client: socket.socket,
		*,
		loop: asyncio.AbstractEventLoop,
		options: ServerOptions,
	) -> HTTPRequest | HTTPProcessingStatus:
		"""Reads from the client until a complete request head is parsed."""
		parser: HTTPParser = HTTPParser()
		read: int = 0
		while True:
			try:
				chunk: bytes = await asyncio.wait_for(
					loop.sock_recv(client, options.readsize),
					timeout=options.readTimeout,
				)
			except asyncio.TimeoutError:
				return HTTPProcessingStatus.Timeout
			if not chunk:
				# A no-data means a close
				return HTTPProcessingStatus.NoData
			read += len(chunk)
			logged(LogLevel.Debug) and debug(
				"Reading Request", Client=f"{id(client):x}", Read=read
			)
			for atom in parser.feed(chunk):
				if isinstance(atom, HTTPRequest):
					return atom
				elif atom is HTTPProcessingStatus.BadFormat:
					return atom

	@classmethod
	async def OnConnection(
		cls,
		dispatcher: Dispatcher,
		client: socket.socket,
		*,
		loop: asyncio.AbstractEventLoop,
		options: ServerOptions,
	) -> HTTPResponse | None:
		"""Asynchronous worker, answering the one request of a connection."""
		writer: AIOSocketWriter = AIOSocketWriter(client, loop, options.writeTimeout)
		res: HTTPResponse | None = None
		req: HTTPRequest | HTTPProcessingStatus | None = None
		try:
			req = await cls.ReadRequest(client, loop=loop, options=options)
			if isinstance(req, HTTPRequest):
				res = await dispatcher.process(req, writer)
				if options.logRequests:
					event(
						req.method,
						req.path,
						Status=res.status if res else None,
						Length=res.contentLength if res else None,
					)
			elif req is HTTPProcessingStatus.BadFormat:
				warning("Malformed request", Client=f"{id(client):x}")
				if await writer.finalize(BAD_REQUEST):
					res = BAD_REQUEST
			elif req is HTTPProcessingStatus.Timeout:
				warning("Client timed out", Client=f"{id(client):x}")
			else:
				# The client closed the connection without a request
				pass
		except (BrokenPipeError, ConnectionResetError) as e:
			warning("Client connection lost", Reason=str(e))
		except Exception as e:
			exception(e)
			if not (writer.isFinalized or writer.isClosed):
				try:
					await writer.finalize(
						req.error(500) if isinstance(req, HTTPRequest) else SERVER_ERROR
					)
				except Exception as f:
					exception(f)
		finally:
			client.close()
		return res

	@classmethod
	async def Serve(
		cls,
		dispatcher: Dispatcher,
		options: ServerOptions = ServerOptions(),
	) -> None:
		"""Main server coroutine."""
		server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
		server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
		try:
			server.bind((options.host, options.port))
		except OSError as e:
			error(
				f"Unable to bind to {options.host}:{options.port}, aborting.",
				"HOSTPORTERR",
			)
			server.close()
			raise e from e
		# The argument is the backlog of connections that will be accepted before
		# they are refused.
		server.listen(options.backlog)
		# This is what we need to use it with asyncio
		server.setblocking(False)

		tasks: set[asyncio.Task[HTTPResponse | None]] = set()
		loop = asyncio.get_running_loop()

		# Manage server state
		state = ServerState()
		# Signal handlers can only be registered from the main thread
		if (
			options.stopSignals
			and threading.current_thread() is threading.main_thread()
		):
			loop.add_signal_handler(SIGINT, lambda: state.stop())
			loop.add_signal_handler(SIGTERM, lambda: state.stop())
		loop.set_exception_handler(state.onException)

		info(
			"HTTP server listening",
			icon="🚀",
			Host=options.host,
			Port=server.getsockname()[1],
			Root=str(dispatcher.config.root),
			Environment=dispatcher.config.environment,
		)

		try:
			while state.isRunning:
				if options.condition and not options.condition():
					break
				try:
					client, _ = await asyncio.wait_for(
						loop.sock_accept(server), timeout=options.polling or 1.0
					)
				except asyncio.TimeoutError:
					continue
				except OSError as e:
					# This can be: [OSError] [Errno 24] Too many open files
					if e.errno == 24:
						await asyncio.sleep(0.1)
					else:
						exception(e)
					continue
				client.setblocking(False)
				task = loop.create_task(
					cls.OnConnection(dispatcher, client, loop=loop, options=options)
				)
				tasks.add(task)
				task.add_done_callback(tasks.discard)
		finally:
			server.close()
			for task in tasks:
				task.cancel()
			await asyncio.gather(*tasks, return_exceptions=True)


def run(
	config: Configuration,
	*,
	host: str | None = None,
	port: int | None = None,
	condition: Callable[[], bool] | None = None,
) -> None:
	"""High level function to run the server with the given configuration."""
	options = ServerOptions(
		host=host or config.host,
		port=config.port if port is None else port,
		condition=condition,
		logRequests=config.logRequests,
	)
	try:
		asyncio.run(AIOSocketServer.Serve(Dispatcher(config), options))
	except KeyboardInterrupt:
		event("ManualShutdown")
	event("EOK")


# EOF
