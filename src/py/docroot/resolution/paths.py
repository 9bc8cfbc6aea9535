from pathlib import Path
from typing import NamedTuple
from urllib.parse import unquote, urlsplit

from ..model import Failure, FailureKind


class NormalizedPath(NamedTuple):
	"""A request path reduced to its segments. Normalized paths never
	contain `.` or `..` segments, so joining them to a directory can't
	climb above it."""

	segments: tuple[str, ...] = ()

	@property
	def isRoot(self) -> bool:
		return not self.segments

	@property
	def path(self) -> str:
		return "/" + "/".join(self.segments)

	def under(self, root: Path) -> Path:
		return root.joinpath(*self.segments)

	def __str__(self) -> str:
		return self.path


ROOT: NormalizedPath = NormalizedPath()


def normalizePath(raw: str | None) -> NormalizedPath | Failure:
	"""Decodes and sanitizes the path of a request target. This is purely
	lexical: the filesystem is never accessed."""
	if not raw:
		return ROOT
	# Absolute-form targets (`GET http://host/path`) carry a scheme
	target: str = raw if raw.startswith("/") else urlsplit(raw).path
	# The query and fragment are never part of the path
	for sep in ("?", "#"):
		target = target.split(sep, 1)[0]
	try:
		decoded: str = unquote(target, errors="strict")
	except UnicodeDecodeError as e:
		return Failure(FailureKind.Security, f"Malformed percent-encoding: {e}")
	if "\x00" in decoded:
		return Failure(FailureKind.Security, "Path contains a NUL byte")
	segments: list[str] = []
	# Empty segments come from repeated or trailing slashes, they collapse.
	for segment in decoded.split("/"):
		if not segment or segment == ".":
			continue
		elif segment == "..":
			if not segments:
				return Failure(FailureKind.Security, f"Path escapes root: {raw}")
			segments.pop()
		else:
			segments.append(segment)
	return NormalizedPath(tuple(segments))


# EOF
