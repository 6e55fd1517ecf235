"""Generation orchestrator.

Runs every generator declared in a control file, in order, and writes one
MIDI file per requested variation. Each generator kind has exactly one
handler in :data:`GENERATOR_HANDLERS`; a kind listed in
``midivary.control_file.GENERATOR_TYPES`` without a handler fails at import.

A generator that raises is recorded as failed and the run moves on to the
next one. Files already written are left in place. The returned
:class:`GenerationReport` says what happened to each generator.
"""

import dataclasses
import logging
import os
import random
import typing

import midivary.clip
import midivary.control_file
import midivary.palette
import midivary.settings
import midivary.variation


logger = logging.getLogger(__name__)

STATUS_WRITTEN = "written"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


@dataclasses.dataclass
class GeneratorResult:

	"""
	Outcome of one generator entry.
	"""

	file_name: str
	type: str
	status: str
	files: typing.List[str] = dataclasses.field(default_factory=list)
	error: typing.Optional[str] = None


@dataclasses.dataclass
class GenerationReport:

	"""Aggregate outcome of a run, one result per generator in declared order."""

	output_directory: str
	results: typing.List[GeneratorResult] = dataclasses.field(default_factory=list)

	@property
	def ok (self) -> bool:

		return all(r.status != STATUS_FAILED for r in self.results)

	@property
	def files (self) -> typing.List[str]:

		return [path for r in self.results for path in r.files]

	@property
	def failures (self) -> typing.List[GeneratorResult]:

		return [r for r in self.results if r.status == STATUS_FAILED]

	def summary (self) -> str:

		"""One-line description of the run."""

		counts = {status: 0 for status in (STATUS_WRITTEN, STATUS_SKIPPED, STATUS_FAILED)}
		for r in self.results:
			counts[r.status] += 1

		return (
			f"{len(self.files)} file(s) from {len(self.results)} generator(s): "
			f"{counts[STATUS_WRITTEN]} written, {counts[STATUS_SKIPPED]} skipped, {counts[STATUS_FAILED]} failed"
		)


@dataclasses.dataclass
class GenerationContext:

	"""Everything a handler needs besides its own generator entry."""

	control_file: midivary.control_file.ControlFile
	output_directory: str
	settings: midivary.settings.GenerationSettings
	rng: random.Random


def variation_path (output_directory: str, file_name: str, index: int) -> str:

	"""Return ``{output_directory}/{file_name}_{index}.mid``."""

	return os.path.join(output_directory, f"{file_name}_{index}.mid")


def generate_bassline (generator: midivary.control_file.GeneratorConfig, context: GenerationContext) -> GeneratorResult:

	"""Write ``variations`` clips, each a fresh variation of the base pattern.

	The note palette is resolved once and shared by every variation.
	"""

	control = context.control_file
	settings = context.settings
	params = generator.params

	logger.info(f"Generating {generator.type}: {generator.file_name}")

	palette = midivary.palette.resolve_palette(
		key = control.key,
		scale = control.scale,
		octave = params.octave,
		degrees = params.note_selection,
	)
	subdiv = params.subdiv or settings.default_subdiv

	logger.info(f"Notes for {generator.file_name}: {palette} ({control.key} {control.scale}, octave {params.octave}, {subdiv})")

	result = GeneratorResult(file_name=generator.file_name, type=generator.type, status=STATUS_WRITTEN)

	for i in range(1, control.variations + 1):

		pattern = midivary.variation.vary(params.pattern, context.rng, settings.mutation_probability)
		clip = midivary.clip.build_clip(palette, pattern, subdiv)
		path = variation_path(context.output_directory, generator.file_name, i)

		midivary.clip.write_midi(
			clip,
			path,
			control.bpm,
			ticks_per_beat = settings.ticks_per_beat,
			velocity = settings.velocity,
			channel = settings.channel,
		)

		result.files.append(path)
		logger.debug(f"{generator.file_name} #{i}: {pattern} ({midivary.variation.onset_count(pattern)} onsets)")

	return result


def generate_stabs (generator: midivary.control_file.GeneratorConfig, context: GenerationContext) -> GeneratorResult:

	"""Stabs are accepted in control files but not generated yet."""

	logger.warning(f"Generator type '{generator.type}' is not implemented - skipping {generator.file_name}")

	return GeneratorResult(file_name=generator.file_name, type=generator.type, status=STATUS_SKIPPED)


GeneratorHandler = typing.Callable[[midivary.control_file.GeneratorConfig, GenerationContext], GeneratorResult]

GENERATOR_HANDLERS: typing.Dict[str, GeneratorHandler] = {
	"bassline": generate_bassline,
	"stabs": generate_stabs,
}


def _check_handlers () -> None:

	missing = set(midivary.control_file.GENERATOR_TYPES) - set(GENERATOR_HANDLERS)

	if missing:
		raise RuntimeError(f"No handler registered for generator type(s): {sorted(missing)}")


_check_handlers()


def _generator_rngs (count: int, settings: midivary.settings.GenerationSettings, rng: typing.Optional[random.Random]) -> typing.List[random.Random]:

	"""Derive one independent random stream per generator.

	With a seed (or an explicit ``rng``) every stream is derived from one
	master generator, so the whole run is repeatable. Without, each generator
	gets its own unseeded generator.
	"""

	if rng is None and settings.seed is not None:
		rng = random.Random(settings.seed)

	if rng is None:
		return [random.Random() for _ in range(count)]

	return [random.Random(rng.randint(0, 2 ** 63)) for _ in range(count)]


def process_control_file (
	control_file: midivary.control_file.ControlFile,
	output_directory: str,
	settings: typing.Optional[midivary.settings.GenerationSettings] = None,
	rng: typing.Optional[random.Random] = None
) -> GenerationReport:

	"""Run every generator in a validated control file.

	Parameters:
		control_file: The validated control file.
		output_directory: Directory for the ``.mid`` files. Created if missing.
		settings: Tool defaults. ``GenerationSettings()`` when omitted.
		rng: Master random generator. Overrides ``settings.seed``.

	Returns:
		A report with one result per generator, in declared order.
	"""

	if settings is None:
		settings = midivary.settings.GenerationSettings()

	os.makedirs(output_directory, exist_ok=True)

	report = GenerationReport(output_directory=output_directory)
	rngs = _generator_rngs(len(control_file.generators), settings, rng)

	for generator, generator_rng in zip(control_file.generators, rngs):

		handler = GENERATOR_HANDLERS.get(generator.type)

		if handler is None:
			raise ValueError(f"Unknown generator type: {generator.type!r}")

		context = GenerationContext(
			control_file = control_file,
			output_directory = output_directory,
			settings = settings,
			rng = generator_rng,
		)

		try:
			result = handler(generator, context)
		except Exception as e:
			logger.error(f"Generator '{generator.file_name}' failed: {e}")
			result = GeneratorResult(file_name=generator.file_name, type=generator.type, status=STATUS_FAILED, error=str(e))

		report.results.append(result)

	logger.info(report.summary())

	return report


def process_config_file (
	config_path: str,
	output_directory: str,
	settings: typing.Optional[midivary.settings.GenerationSettings] = None,
	rng: typing.Optional[random.Random] = None
) -> GenerationReport:

	"""Load and validate a control file, then run it.

	Raises:
		midivary.control_file.InvalidControlFileError: Before any output is
			written, if the file does not parse or fails validation.
	"""

	control_file = midivary.control_file.load_control_file(config_path)

	return process_control_file(control_file, output_directory, settings=settings, rng=rng)
