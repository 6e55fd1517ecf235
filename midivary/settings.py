import dataclasses
import logging
import os
import typing

import yaml

import midivary.clip
import midivary.variation


logger = logging.getLogger(__name__)


@dataclasses.dataclass
class GenerationSettings:

	"""
	Tool defaults that are not part of a control file.

	Parameters:
		mutation_probability: Per-step flip chance used by the variation engine.
		default_subdiv: Subdivision used when a generator does not set ``subdiv``.
		seed: Master seed. ``None`` gives a different result on every run.
		ticks_per_beat: MIDI file resolution.
		velocity: Note-on velocity for every note.
		channel: MIDI channel (0-15).
	"""

	mutation_probability: float = midivary.variation.DEFAULT_PROBABILITY
	default_subdiv: str = midivary.clip.DEFAULT_SUBDIV
	seed: typing.Optional[int] = None
	ticks_per_beat: int = midivary.clip.DEFAULT_TICKS_PER_BEAT
	velocity: int = midivary.clip.DEFAULT_VELOCITY
	channel: int = midivary.clip.DEFAULT_CHANNEL

	def __post_init__ (self) -> None:
		if not 0.0 <= self.mutation_probability <= 1.0:
			raise ValueError("mutation_probability must be between 0.0 and 1.0")
		if self.default_subdiv not in midivary.clip.SUBDIVISIONS:
			raise ValueError(f"Unknown default_subdiv: {self.default_subdiv!r}")
		if self.ticks_per_beat <= 0:
			raise ValueError("ticks_per_beat must be positive")
		if not 1 <= self.velocity <= 127:
			raise ValueError("velocity must be between 1 and 127")
		if not 0 <= self.channel <= 15:
			raise ValueError("channel must be between 0 and 15")


def load_config (config_path: str) -> dict:

	"""
	Load a settings dictionary from a YAML file.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Settings file {config_path} not found. Using defaults.")
		return {}

	with open(config_path, 'r') as f:
		return yaml.safe_load(f) or {}


def settings_from_config (config: dict) -> GenerationSettings:

	"""Build settings from the ``generation`` and ``midi`` sections of a config dict."""

	generation = config.get('generation') or {}
	midi = config.get('midi') or {}
	defaults = GenerationSettings()

	return GenerationSettings(
		mutation_probability = float(generation.get('mutation_probability', defaults.mutation_probability)),
		default_subdiv = str(generation.get('default_subdiv', defaults.default_subdiv)),
		seed = generation.get('seed', defaults.seed),
		ticks_per_beat = int(midi.get('ticks_per_beat', defaults.ticks_per_beat)),
		velocity = int(midi.get('velocity', defaults.velocity)),
		channel = int(midi.get('channel', defaults.channel)),
	)


def load_settings (config_path: typing.Optional[str] = None, seed: typing.Optional[int] = None) -> GenerationSettings:

	"""Load settings from an optional YAML file. ``seed`` overrides the file's seed."""

	config = load_config(config_path) if config_path else {}
	settings = settings_from_config(config)

	if seed is not None:
		settings = dataclasses.replace(settings, seed=seed)

	return settings
