import argparse
import asyncio
import logging
import typing

import arpsync.config
import arpsync.scheduler
import arpsync.session


logger = logging.getLogger(__name__)


def parse_args (argv: typing.Optional[typing.List[str]] = None) -> argparse.Namespace:

	"""
	Parse command-line arguments.
	"""

	parser = argparse.ArgumentParser(prog="arpsync", description="Clock-synced MIDI arpeggiator.")

	parser.add_argument("--config", default="config.yaml", help="YAML config file (default: config.yaml)")
	parser.add_argument("--render", type=int, metavar="BARS", help="Render BARS bars to a MIDI file instead of playing live")
	parser.add_argument("--output", default="render.mid", help="Output file for --render (default: render.mid)")
	parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level")

	return parser.parse_args(argv)


def main (argv: typing.Optional[typing.List[str]] = None) -> None:

	"""
	Main entry point for the arpsync application.
	"""

	args = parse_args(argv)

	logging.basicConfig(level=getattr(logging, args.log_level))

	logger.info("arpsync starting...")

	config = arpsync.config.SessionConfig.from_dict(arpsync.config.load_config(args.config))

	if args.render is not None:
		session = arpsync.session.Session(config, scheduler=arpsync.scheduler.ManualScheduler())
		try:
			filename = session.render(args.render, args.output)
		finally:
			session.teardown()

		if filename is None:
			logger.warning("Nothing was played - no file written (are any notes configured?)")
		return

	session = arpsync.session.Session(config)

	try:
		asyncio.run(session.run())

	except KeyboardInterrupt:
		pass


if __name__ == "__main__":
	main()
