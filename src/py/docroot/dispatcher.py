from typing import Any, Callable, Coroutine, TypeAlias

from .config import Configuration
from .features.cors import setCORSHeaders
from .guard import ResponseTimeoutGuard
from .http.model import HTTPRequest, HTTPResponse, HTTPResponseWriter
from .model import Failure, FailureKind
from .resolution.locator import ResourceLocator
from .resolution.paths import normalizePath
from .utils.logging import LogLevel, debug, logged, warning

THandler: TypeAlias = Callable[
	[HTTPRequest, dict[str, str]], Coroutine[Any, Any, HTTPResponse]
]


class Dispatcher:
	"""Turns a request into exactly one response: the origin is gated first,
	then the request is routed by method to the file resolution, the
	`OPTIONS` responder or a `501`."""

	def __init__(self, config: Configuration):
		self.config: Configuration = config
		self.methods: tuple[str, ...] = config.effectiveMethods
		self.allow: str = ", ".join(self.methods)
		self.locator: ResourceLocator | None = (
			ResourceLocator(config.root, config.extensions) if config.root else None
		)
		self.handlers: dict[str, THandler] = {
			"GET": self.onResource,
			"HEAD": self.onResource,
			"OPTIONS": self.onOptions,
		}

	async def process(
		self, request: HTTPRequest, writer: HTTPResponseWriter
	) -> HTTPResponse | None:
		"""Processes the request under the response deadline, and writes
		the response to the writer."""
		headers: dict[str, str] = setCORSHeaders(
			{}, request.header("Origin"), self.config.cors
		)
		guard = ResponseTimeoutGuard(writer, self.config.timeout / 1000.0)
		return await guard.process(
			self.dispatch(request, headers),
			lambda: self.onFailure(request, Failure(FailureKind.Timeout), headers),
		)

	async def dispatch(
		self, request: HTTPRequest, headers: dict[str, str]
	) -> HTTPResponse:
		if request.method not in self.methods:
			return self.onFailure(
				request,
				Failure(FailureKind.UnsupportedMethod, request.method),
				headers,
			)
		elif handler := self.handlers.get(request.method):
			return await handler(request, headers)
		else:
			warning("Allowed method has no handler", Method=request.method)
			return self.onFailure(
				request,
				Failure(FailureKind.UnsupportedMethod, request.method),
				headers,
			)

	async def onResource(
		self, request: HTTPRequest, headers: dict[str, str]
	) -> HTTPResponse:
		"""Answers `GET` and `HEAD` with the file the path resolves to."""
		if not self.locator:
			# Not reachable as GET/HEAD are not allowed without a root
			return self.onFailure(request, Failure(FailureKind.NotFound), headers)
		path = normalizePath(request.path)
		if isinstance(path, Failure):
			return self.onFailure(request, path, headers)
		candidate = await self.locator.locate(path)
		if isinstance(candidate, Failure):
			return self.onFailure(request, candidate, headers)
		content = await self.locator.read(candidate)
		if isinstance(content, Failure):
			return self.onFailure(request, content, headers)
		return request.respond(content, candidate.contentType, 200, headers)

	async def onOptions(
		self, request: HTTPRequest, headers: dict[str, str]
	) -> HTTPResponse:
		return request.respond(None, None, 200, headers | {"Allow": self.allow})

	def onFailure(
		self, request: HTTPRequest, failure: Failure, headers: dict[str, str]
	) -> HTTPResponse:
		logged(LogLevel.Debug) and debug(
			"Request failed",
			Method=request.method,
			Path=request.path,
			Kind=failure.kind.name,
			Reason=failure.reason,
		)
		if failure.kind is FailureKind.UnsupportedMethod:
			headers = headers | {"Allow": self.allow}
		return request.error(failure.status, headers)


# EOF
