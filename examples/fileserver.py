"""
Static File Server Example

Serves the `public/` directory next to this file, using `config.json`.

Usage:
    python fileserver.py

Test with:
    curl -i http://localhost:8000/
    curl -i http://localhost:8000/docs/about
    curl -I http://localhost:8000/missing
    curl -i -X OPTIONS http://localhost:8000/
    curl -i -H "Origin: http://localhost:3000" http://localhost:8000/
    curl -i --path-as-is http://localhost:8000/../config.json
"""

from pathlib import Path

from docroot import Configuration, run
from docroot.utils.logging import info

if __name__ == "__main__":
	config = Configuration.Load(Path(__file__).parent / "config.json")
	info("Starting static file server", Root=str(config.root))
	run(config)

# EOF
