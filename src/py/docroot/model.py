from enum import Enum
from typing import NamedTuple

# -----------------------------------------------------------------------------
#
# FAILURES
#
# -----------------------------------------------------------------------------
# The resolution pipeline does not raise: each stage returns either its
# value or a `Failure`, and the dispatcher turns failures into responses.


class FailureKind(Enum):
	Security = "security"  # Path escapes the root or is malformed
	NotFound = "not-found"  # No candidate file exists
	IO = "io"  # The file exists but could not be read
	UnsupportedMethod = "unsupported-method"
	Timeout = "timeout"  # The handler exceeded its deadline


# NOTE: Unsupported methods are answered with 501 (Not Implemented), see
# DESIGN.md for the rationale.
FAILURE_STATUS: dict[FailureKind, int] = {
	FailureKind.Security: 400,
	FailureKind.NotFound: 404,
	FailureKind.IO: 500,
	FailureKind.UnsupportedMethod: 501,
	FailureKind.Timeout: 500,
}


class Failure(NamedTuple):
	"""An error value produced by one of the resolution stages."""

	kind: FailureKind
	reason: str = ""

	@property
	def status(self) -> int:
		return FAILURE_STATUS[self.kind]

	def __str__(self) -> str:
		return f"Failure({self.kind.name}{f': {self.reason}' if self.reason else ''})"


# EOF
