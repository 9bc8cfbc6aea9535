import asyncio
import os
import stat
from pathlib import Path
from typing import NamedTuple

from ..model import Failure, FailureKind
from ..utils.logging import LogLevel, debug, error, logged, warning
from .paths import NormalizedPath

INDEX: str = "index.html"
HTML: str = "text/html"
XHTML: str = "application/xhtml+xml"


class Candidate(NamedTuple):
	"""A file that may answer a request, with the content type to force
	when it is the one selected."""

	path: Path
	contentType: str | None = None


def variantType(extension: str) -> str:
	"""The `.xhtml` and `.xhtm` variants are XHTML, the others HTML."""
	return XHTML if extension.lstrip(".").lower().startswith("x") else HTML


def isFile(path: Path) -> bool:
	"""Tells if the path is an existing regular file. Directories, sockets,
	devices and broken links are not."""
	try:
		return stat.S_ISREG(os.stat(path).st_mode)
	except (OSError, ValueError):
		return False


class ResourceLocator:
	"""Finds the file that answers a request path within a root directory."""

	__slots__ = ["root", "extensions"]

	def __init__(self, root: Path | str, extensions: tuple[str, ...] = ()):
		self.root: Path = Path(root).resolve()
		self.extensions: tuple[str, ...] = extensions

	def candidates(self, path: NormalizedPath) -> list[Candidate]:
		"""Returns the candidates for the given path, in priority order: the
		exact resource, its `index.html` and then its extension variants."""
		exact: Path = path.under(self.root)
		res: list[Candidate] = [Candidate(exact), Candidate(exact / INDEX, HTML)]
		# The root has no name to suffix
		if not path.isRoot:
			res += [
				Candidate(exact.with_name(exact.name + ext), variantType(ext))
				for ext in self.extensions
			]
		return res

	def contains(self, path: Path) -> bool:
		"""Tells if the path, once symlinks are resolved, is still within
		the root."""
		try:
			resolved = path.resolve()
		except (OSError, RuntimeError):
			return False
		return resolved == self.root or self.root in resolved.parents

	def probe(self, candidate: Candidate) -> bool:
		if not self.contains(candidate.path):
			warning("Candidate escapes root", Path=str(candidate.path))
			return False
		return isFile(candidate.path)

	async def locate(self, path: NormalizedPath) -> Candidate | Failure:
		"""Returns the first candidate that is a regular file."""
		loop = asyncio.get_running_loop()
		for candidate in self.candidates(path):
			if await loop.run_in_executor(None, self.probe, candidate):
				logged(LogLevel.Debug) and debug(
					"Resolved", Path=path.path, File=str(candidate.path)
				)
				return candidate
		return Failure(FailureKind.NotFound, f"No file for path: {path}")

	async def read(self, candidate: Candidate) -> bytes | Failure:
		loop = asyncio.get_running_loop()
		try:
			return await loop.run_in_executor(None, candidate.path.read_bytes)
		except OSError as e:
			# The file may have been removed or made unreadable since it
			# was probed.
			error(
				"Could not read file",
				"READERR",
				Path=str(candidate.path),
				Reason=str(e),
			)
			return Failure(FailureKind.IO, str(e))


# EOF
