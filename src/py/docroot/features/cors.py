import re

from ..config import CORSConfiguration

# SEE: https://developer.mozilla.org/en-US/docs/Web/HTTP/Headers/Origin

RE_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")
RE_PORT = re.compile(r":\d*$")


def originHost(origin: str) -> str:
	"""Reduces an `Origin` value like `http://example.com:8080` to its bare,
	lowercase hostname `example.com`."""
	host: str = RE_SCHEME.sub("", origin.strip(), count=1)
	host = host.split("/", 1)[0]
	# IPv6 literals (`[::1]:8080`) have colons of their own
	if not host.endswith("]"):
		host = RE_PORT.sub("", host, count=1)
	return host.lower()


def allowedOrigin(origin: str | None, cors: CORSConfiguration) -> str | None:
	"""Returns the value to use for `Access-Control-Allow-Origin`, which is
	the origin exactly as the client sent it, or `None` when the origin is
	not allowed."""
	if not (cors.enabled and origin):
		return None
	return origin if originHost(origin) in cors.domains else None


def setCORSHeaders(
	headers: dict[str, str], origin: str | None, cors: CORSConfiguration
) -> dict[str, str]:
	"""Sets `Access-Control-Allow-Origin` in the given headers when the
	origin passes the allow-list, and returns them."""
	if allowed := allowedOrigin(origin, cors):
		headers["Access-Control-Allow-Origin"] = allowed
	return headers


# EOF
