"""Control file schema, validation and loading.

A control file is a JSON document describing the key, scale and tempo shared
by every generator, plus the list of generators to run::

	{
		"key": "A",
		"scale": "minor",
		"bpm": 100,
		"variations": 2,
		"generators": [
			{
				"type": "bassline",
				"fileName": "bass",
				"params": {"octave": 2, "pattern": "x_x_", "noteSelection": [1, 5], "subdiv": "8n"}
			}
		]
	}

`is_control_file` and `is_generator_config` are pure predicates over parsed
JSON. `load_control_file` reads, parses and validates a file in one step.
"""

import dataclasses
import json
import logging
import os
import typing

import yaml

import midivary.clip


logger = logging.getLogger(__name__)

GENERATOR_TYPES: typing.Tuple[str, ...] = ("bassline", "stabs")

REQUIRED_FIELDS: typing.Tuple[str, ...] = ("key", "scale", "bpm", "variations", "generators")

DEFAULT_NOTE_SELECTION: typing.Tuple[int, ...] = (1,)


class InvalidControlFileError (Exception):

	"""Raised when a control file cannot be parsed or does not match the schema."""

	def __init__ (self, message: str = "Invalid control file format") -> None:
		super().__init__(message)


@dataclasses.dataclass(frozen=True)
class GeneratorParams:

	"""
	Per-generator parameters.

	``note_selection`` and ``subdiv`` are ``None`` when the control file omits
	them; the generator fills in defaults at run time.
	"""

	octave: int
	pattern: str
	note_selection: typing.Optional[typing.Tuple[int, ...]] = None
	subdiv: typing.Optional[str] = None


@dataclasses.dataclass(frozen=True)
class GeneratorConfig:

	"""One unit of work: ``variations`` clips built from one base pattern."""

	type: str
	file_name: str
	params: GeneratorParams

	@classmethod
	def from_dict (cls, data: typing.Dict[str, typing.Any]) -> "GeneratorConfig":

		"""Build from a dict already accepted by :func:`is_generator_config`."""

		params = data["params"]
		note_selection = params.get("noteSelection")

		return cls(
			type = data["type"],
			file_name = data["fileName"],
			params = GeneratorParams(
				octave = params["octave"],
				pattern = params["pattern"],
				note_selection = tuple(note_selection) if note_selection is not None else None,
				subdiv = params.get("subdiv"),
			),
		)


@dataclasses.dataclass(frozen=True)
class ControlFile:

	"""The validated root document. Generator order is output order."""

	key: str
	scale: str
	bpm: float
	variations: int
	generators: typing.Tuple[GeneratorConfig, ...] = ()

	@classmethod
	def from_dict (cls, data: typing.Dict[str, typing.Any]) -> "ControlFile":

		"""Build from a dict already accepted by :func:`is_control_file`."""

		return cls(
			key = data["key"],
			scale = data["scale"],
			bpm = data["bpm"],
			variations = data["variations"],
			generators = tuple(GeneratorConfig.from_dict(g) for g in data["generators"]),
		)


def _is_number (value: typing.Any) -> bool:

	# bool is a subclass of int; JSON true/false must not pass as numbers
	return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integer (value: typing.Any) -> bool:

	return isinstance(value, int) and not isinstance(value, bool)


def _is_note_selection (value: typing.Any) -> bool:

	return (
		isinstance(value, list)
		and len(value) > 0
		and all(_is_integer(degree) and degree >= 1 for degree in value)
	)


def is_generator_config (candidate: typing.Any) -> bool:

	"""Return True if ``candidate`` is a well-formed generator entry.

	Required: ``type`` in :data:`GENERATOR_TYPES`, a non-empty ``fileName``
	without path separators, and ``params`` holding an integer ``octave`` and
	a string ``pattern``. The optional ``noteSelection`` (non-empty list of
	1-based degrees) and ``subdiv`` (known subdivision label) are checked only
	when present.
	"""

	if not isinstance(candidate, dict):
		return False

	file_name = candidate.get("fileName")
	params = candidate.get("params")

	if candidate.get("type") not in GENERATOR_TYPES:
		return False

	if not isinstance(file_name, str) or not file_name or "/" in file_name or "\\" in file_name:
		return False

	if not isinstance(params, dict):
		return False

	if not _is_integer(params.get("octave")) or not isinstance(params.get("pattern"), str):
		return False

	if "noteSelection" in params and not _is_note_selection(params["noteSelection"]):
		return False

	if "subdiv" in params and not (isinstance(params["subdiv"], str) and params["subdiv"] in midivary.clip.SUBDIVISIONS):
		return False

	return True


def is_control_file (candidate: typing.Any) -> bool:

	"""Return True if ``candidate`` is a well-formed control file.

	Example:
		```python
		is_control_file({"key": "C", "scale": "minor", "bpm": 120, "variations": 4, "generators": []})  # → True
		is_control_file({})  # → False
		```
	"""

	if not isinstance(candidate, dict):
		return False

	if any(field not in candidate for field in REQUIRED_FIELDS):
		return False

	bpm = candidate["bpm"]
	variations = candidate["variations"]
	generators = candidate["generators"]

	return (
		isinstance(candidate["key"], str)
		and isinstance(candidate["scale"], str)
		and _is_number(bpm) and midivary.clip.is_valid_bpm(bpm)
		and _is_integer(variations) and variations >= 1
		and isinstance(generators, list)
		and all(is_generator_config(g) for g in generators)
	)


def parse_control_file (text: str, path: str = "") -> ControlFile:

	"""
	Parse and validate control file text.

	Files ending in ``.yaml`` or ``.yml`` are read with PyYAML; anything else
	is read as JSON.

	Raises:
		InvalidControlFileError: If the text does not parse or fails validation.
	"""

	try:
		if path.lower().endswith((".yaml", ".yml")):
			data = yaml.safe_load(text)
		else:
			data = json.loads(text)
	except (json.JSONDecodeError, yaml.YAMLError) as e:
		logger.error(f"Could not parse control file {path or '<text>'}: {e}")
		raise InvalidControlFileError() from e

	if not is_control_file(data):
		raise InvalidControlFileError()

	return ControlFile.from_dict(data)


def load_control_file (path: str) -> ControlFile:

	"""Read, parse and validate the control file at ``path``."""

	try:
		with open(path, "r", encoding="utf-8") as f:
			text = f.read()
	except UnicodeDecodeError as e:
		logger.error(f"Control file {path} is not valid UTF-8: {e}")
		raise InvalidControlFileError() from e

	control_file = parse_control_file(text, os.fspath(path))
	logger.debug(f"Loaded control file {path}: {len(control_file.generators)} generator(s)")

	return control_file
