"""Command-line entry point.

	python -m midivary generate -c control.json -o out/
	python -m midivary generate -c control.json -o out/ --seed 42 --settings midivary.yaml
	python -m midivary validate -c control.json
"""

import argparse
import logging
import os
import sys
import typing

import midivary.control_file
import midivary.generator
import midivary.settings


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIGURATION = 2


class ConfigurationError (Exception):

	"""Raised when required command-line options are missing."""

	pass


def validate_options (options: argparse.Namespace, require_output: bool = True) -> None:

	"""Check required options before any file is touched."""

	if not options.config:
		raise ConfigurationError("Config path is required but was not provided")

	if require_output and not options.output:
		raise ConfigurationError("Output directory is required but was not provided")


def create_argument_parser () -> argparse.ArgumentParser:

	parser = argparse.ArgumentParser(prog="midivary", description="Generate rhythmic MIDI clip variations from a JSON control file.")
	parser.add_argument("-v", "--verbose", action="store_true", help="Log every written file")

	subparsers = parser.add_subparsers(dest="command")

	generate = subparsers.add_parser("generate", help="Generate MIDI clips based on a JSON control file.")
	generate.add_argument("-c", "--config",   type=str, default=None, help="Path to the JSON control file.")
	generate.add_argument("-o", "--output",   type=str, default=None, help="Output directory for the MIDI files.")
	generate.add_argument("--seed",           type=int, default=None, help="Seed for repeatable variations")
	generate.add_argument("--settings",       type=str, default=None, help="YAML settings file")

	validate = subparsers.add_parser("validate", help="Check a control file without writing anything.")
	validate.add_argument("-c", "--config",   type=str, default=None, help="Path to the JSON control file.")

	return parser


def run_generate (options: argparse.Namespace) -> int:

	validate_options(options)

	settings = midivary.settings.load_settings(options.settings, seed=options.seed)
	output_path = os.path.abspath(options.output)

	logger.info("Starting MIDI generation...")

	report = midivary.generator.process_config_file(options.config, output_path, settings=settings)

	if not report.ok:
		for failure in report.failures:
			logger.error(f"{failure.file_name}: {failure.error}")
		return EXIT_FAILED

	logger.info(f"MIDI files successfully generated in: {output_path}")
	return EXIT_OK


def run_validate (options: argparse.Namespace) -> int:

	validate_options(options, require_output=False)

	control_file = midivary.control_file.load_control_file(options.config)
	logger.info(
		f"{options.config} is valid: {len(control_file.generators)} generator(s), "
		f"{control_file.variations} variation(s) each, {control_file.key} {control_file.scale} at {control_file.bpm} BPM"
	)

	return EXIT_OK


def main (argv: typing.Optional[typing.List[str]] = None) -> int:

	"""
	Main entry point for the midivary command.
	"""

	parser = create_argument_parser()
	options = parser.parse_args(argv)

	logging.basicConfig(level=logging.DEBUG if options.verbose else logging.INFO, format="%(levelname)s %(name)s: %(message)s")

	commands = {
		"generate": run_generate,
		"validate": run_validate,
	}

	if options.command not in commands:
		parser.print_help()
		return EXIT_CONFIGURATION

	try:
		return commands[options.command](options)

	except ConfigurationError as e:
		logger.error(str(e))
		return EXIT_CONFIGURATION

	except midivary.control_file.InvalidControlFileError as e:
		logger.error(str(e))
		return EXIT_FAILED


if __name__ == "__main__":
	sys.exit(main())
