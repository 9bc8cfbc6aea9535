import asyncio
from typing import Any, Callable, Coroutine

from .http.model import HTTPResponse, HTTPResponseWriter
from .utils.logging import warning

__doc__ = """
The response deadline. A guard is armed when a request starts being
processed, and if the handler hasn't produced a response when it expires,
the handler is cancelled and the guard writes a `500` in its place. The
writer only accepts one response, so a guard can never answer twice.
"""


class ResponseTimeoutGuard:
	"""Arms a deadline around a response handler, and finalizes the response
	on the writer, whether it comes from the handler or from the deadline."""

	__slots__ = ["writer", "timeout", "expired", "_handle", "_task"]

	def __init__(self, writer: HTTPResponseWriter, timeout: float):
		self.writer: HTTPResponseWriter = writer
		# In seconds
		self.timeout: float = timeout
		self.expired: bool = False
		self._handle: asyncio.TimerHandle | None = None
		self._task: asyncio.Task[HTTPResponse] | None = None

	@property
	def isArmed(self) -> bool:
		return self._handle is not None

	def arm(self, task: "asyncio.Task[HTTPResponse]") -> "ResponseTimeoutGuard":
		if self._handle:
			raise RuntimeError("Guard is already armed")
		self._task = task
		self._handle = asyncio.get_running_loop().call_later(
			self.timeout, self._expire
		)
		return self

	def disarm(self) -> bool:
		"""Cancels the countdown, returning `True` if it was still pending."""
		handle, self._handle = self._handle, None
		self._task = None
		if handle:
			handle.cancel()
			return True
		return False

	def _expire(self) -> None:
		self._handle = None
		# The handler is done or a response already went out, there's
		# nothing left to guard.
		if self.writer.isFinalized or not self._task or self._task.done():
			return
		self.expired = True
		warning("Response timed out", Timeout=self.timeout)
		self._task.cancel()

	async def process(
		self,
		handler: Coroutine[Any, Any, HTTPResponse],
		onTimeout: Callable[[], HTTPResponse],
	) -> HTTPResponse | None:
		"""Runs the handler under the deadline and writes the resulting
		response, which is the one created by `onTimeout` when the deadline
		expired. Returns the response that was written, if any."""
		task: asyncio.Task[HTTPResponse] = asyncio.get_running_loop().create_task(
			handler
		)
		self.arm(task)
		try:
			response: HTTPResponse = await task
		except asyncio.CancelledError:
			# Our own cancellation (ie. the server is shutting down) is
			# propagated, only the deadline's is handled.
			if not self.expired:
				raise
			response = onTimeout()
		finally:
			self.disarm()
			if not task.done():
				task.cancel()
		return response if await self.writer.finalize(response) else None


# EOF
