from .http.model import HTTPRequest, HTTPResponse  # NOQA: F401
from .config import Configuration, ConfigurationError  # NOQA: F401
from .dispatcher import Dispatcher  # NOQA: F401
from .server import run  # NOQA: F401


# EOF
