import json
from os import getenv
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, NamedTuple

from .utils.io import DEFAULT_ENCODING

# The port used when the environment has none. This differs from the usual
# `80` so that the server can run unprivileged.
PORT: str = getenv("PORT", "8000")

# If we're starting in a development environment, we want to be accessible
# from everywhere
HOST: str = getenv("HOST", "0.0.0.0")  # nosec: B104

ENVIRONMENT: str | None = getenv("DOCROOT_ENV")

LOG_REQUESTS: bool = getenv("DOCROOT_LOG_REQUESTS", "1") == "1"

# Response deadline, in milliseconds, when the environment has none
DEFAULT_TIMEOUT: int = 60_000

DEFAULT_METHODS: tuple[str, ...] = ("GET", "HEAD", "OPTIONS")

# Suffixes tried after the exact path and its index, when enabled
EXTENSIONS: tuple[str, ...] = (".html", ".htm", ".xhtml", ".xhtm")

# The original configuration layout has one section per environment
ENVIRONMENT_SECTIONS: dict[str, str] = {
	"devServer": "development",
	"server": "production",
}


class ConfigurationError(Exception):
	"""Raised when the configuration can't be loaded or is invalid. This is
	the only error that is fatal to the process."""


class CORSConfiguration(NamedTuple):
	enabled: bool = False
	# Bare, lowercase hostnames
	domains: frozenset[str] = frozenset()


class Configuration(NamedTuple):
	"""The immutable configuration, loaded once at startup and handed to
	every request."""

	root: Path | None = None
	methods: tuple[str, ...] = DEFAULT_METHODS
	cors: CORSConfiguration = CORSConfiguration()
	timeouts: Mapping[str, int] = MappingProxyType({})
	environment: str = "development"
	ports: Mapping[str, int] = MappingProxyType({})
	host: str = HOST
	# An empty tuple disables extension variants
	extensions: tuple[str, ...] = ()
	logRequests: bool = LOG_REQUESTS

	@property
	def timeout(self) -> int:
		"""The response deadline for the active environment, in milliseconds."""
		return self.timeouts.get(self.environment) or DEFAULT_TIMEOUT

	@property
	def port(self) -> int:
		return self.ports.get(self.environment) or defaultPort()

	@property
	def effectiveMethods(self) -> tuple[str, ...]:
		"""The allowed methods, without `GET` and `HEAD` when there is no
		client root to serve files from."""
		if self.root:
			return self.methods
		else:
			return tuple(_ for _ in self.methods if _ not in ("GET", "HEAD"))

	@staticmethod
	def Load(path: Path | str) -> "Configuration":
		"""Loads the configuration from the given JSON file. Relative paths
		in the file are resolved from the file's directory."""
		p = Path(path)
		try:
			with open(p, "rt", encoding=DEFAULT_ENCODING) as f:
				data = json.load(f)
		except OSError as e:
			raise ConfigurationError(f"Could not read configuration {p}: {e}") from e
		except ValueError as e:
			raise ConfigurationError(f"Malformed configuration {p}: {e}") from e
		return Configuration.FromDict(data, base=p.absolute().parent)

	@staticmethod
	def FromDict(data: Any, *, base: Path | None = None) -> "Configuration":
		if not isinstance(data, dict):
			raise ConfigurationError(f"Configuration must be an object, got: {data!r}")
		client: dict[str, Any] = section(data, "client")
		cors: dict[str, Any] = section(data, "cors")
		timeouts: dict[str, int] = {}
		ports: dict[str, int] = {}
		# Original layout: `{"devServer":{"port","timeout"},"server":{…}}`
		for key, env in ENVIRONMENT_SECTIONS.items():
			for name, target in (("timeout", timeouts), ("port", ports)):
				if (value := section(data, key).get(name)) is not None:
					target[env] = positive(value, f"{key}.{name}")
		# Explicit layout: `{"timeouts":{"development":5000},"ports":{…}}`
		for name, target in (("timeouts", timeouts), ("ports", ports)):
			for env, value in section(data, name).items():
				target[env] = positive(value, f"{name}.{env}")
		domains: list[str] = strings(cors.get("domains", []), "cors.domains")
		return Configuration(
			root=clientRoot(client.get("dir"), base),
			methods=tuple(
				dict.fromkeys(
					_.upper() for _ in strings(data.get("methods", DEFAULT_METHODS), "methods")
				)
			),
			cors=CORSConfiguration(
				enabled=bool(cors.get("enabled", bool(domains))),
				domains=frozenset(_.lower() for _ in domains),
			),
			timeouts=MappingProxyType(timeouts),
			environment=ENVIRONMENT or str(data.get("environment", "development")),
			ports=MappingProxyType(ports),
			host=str(data.get("host", HOST)),
			extensions=extensions(client.get("extensions", False)),
			logRequests=LOG_REQUESTS,
		)

	def __str__(self) -> str:
		return f"Configuration(root={self.root} env={self.environment} methods={','.join(self.methods)})"


# -----------------------------------------------------------------------------
#
# HELPERS
#
# -----------------------------------------------------------------------------


def section(data: dict[str, Any], name: str) -> dict[str, Any]:
	value = data.get(name)
	if value is None:
		return {}
	elif isinstance(value, dict):
		return value
	else:
		raise ConfigurationError(f"Configuration `{name}` must be an object")


def strings(value: Any, name: str) -> list[str]:
	if isinstance(value, str) or not isinstance(value, Iterable):
		raise ConfigurationError(f"Configuration `{name}` must be a list of strings")
	res: list[str] = []
	for _ in value:
		if not isinstance(_, str) or not _:
			raise ConfigurationError(
				f"Configuration `{name}` must only contain non-empty strings, got: {_!r}"
			)
		res.append(_)
	return res


def positive(value: Any, name: str) -> int:
	if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
		raise ConfigurationError(
			f"Configuration `{name}` must be a positive integer, got: {value!r}"
		)
	return value


def clientRoot(value: Any, base: Path | None) -> Path | None:
	if value is None:
		return None
	elif not isinstance(value, str) or not value:
		raise ConfigurationError("Configuration `client.dir` must be a path")
	path = Path(value).expanduser()
	if not path.is_absolute():
		path = (base or Path.cwd()) / path
	path = path.resolve()
	if not path.is_dir():
		raise ConfigurationError(f"Client directory does not exist: {path}")
	return path


def defaultPort(value: str | None = None) -> int:
	"""Parses the fallback port, which is `PORT` unless given."""
	value = PORT if value is None else value
	try:
		return positive(int(value), "PORT")
	except ValueError as e:
		raise ConfigurationError(f"`PORT` must be a port number, got: {value!r}") from e


def extensions(value: Any) -> tuple[str, ...]:
	if value is True:
		return EXTENSIONS
	elif value is False or value is None:
		return ()
	else:
		return tuple(
			_ if _.startswith(".") else f".{_}"
			for _ in strings(value, "client.extensions")
		)


# EOF
