import argparse
import os
import sys

from .config import Configuration, ConfigurationError
from .server import run
from .utils.logging import error, info


def main(args: list[str] | None = None) -> int:
	parser = argparse.ArgumentParser(
		prog="docroot",
		description="Serves the files of a directory over HTTP",
		formatter_class=argparse.ArgumentDefaultsHelpFormatter,
	)
	parser.add_argument(
		"-c",
		"--config",
		action="store",
		dest="config",
		help="Path to the JSON configuration file",
		default=os.environ.get("DOCROOT_CONFIG", "config.json"),
	)
	parser.add_argument(
		"-r",
		"--root",
		action="store",
		dest="root",
		help="Serves this directory instead of the configured client directory",
	)
	parser.add_argument(
		"-e",
		"--env",
		action="store",
		dest="environment",
		help="Overrides the active environment",
	)
	parser.add_argument(
		"-H", "--host", action="store", dest="host", help="Specifies the host"
	)
	parser.add_argument(
		"-p", "--port", action="store", dest="port", type=int, help="Specifies the port"
	)
	options = parser.parse_args(args=args)

	try:
		if os.path.exists(options.config):
			config = Configuration.Load(options.config)
		elif options.root:
			config = Configuration()
		else:
			raise ConfigurationError(f"Configuration file not found: {options.config}")
		if options.root:
			overrides = Configuration.FromDict({"client": {"dir": options.root}})
			config = config._replace(root=overrides.root)
		if options.environment:
			config = config._replace(environment=options.environment)
		port: int = config.port if options.port is None else options.port
	except ConfigurationError as e:
		error(str(e), "CONFIGERR")
		return 1

	info("Starting docroot", Config=str(config))
	run(config, host=options.host, port=port)
	return 0


if __name__ == "__main__":
	sys.exit(main())

# EOF
