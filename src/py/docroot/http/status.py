from http import HTTPStatus

# Reason phrases, indexed by status code
HTTP_STATUS: dict[int, str] = {_.value: _.phrase for _ in HTTPStatus}


def statusMessage(status: int) -> str:
	return HTTP_STATUS.get(status, "Unknown Status")


def statusLine(status: int | None = None, message: str | None = None) -> str:
	"""Returns the canonical `<code> <reason>` line, which doubles as the
	plain-text body of responses that don't have one. A response with no
	explicit status is a `200 OK`."""
	code: int = 200 if status is None else status
	return f"{code} {message or statusMessage(code)}"


# EOF
