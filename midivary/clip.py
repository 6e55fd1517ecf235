"""Clip construction and MIDI file output.

A clip pairs a note palette with a step pattern and a subdivision. Each
pattern character is one step of ``subdiv`` length:

- ``x`` starts the next palette note (the palette cycles across onsets).
- ``_`` holds the sounding note for one more step, or stays silent if
  nothing is sounding.
- ``-`` is an explicit rest that ends the sounding note.

Subdivision labels follow the common ``Nn`` / ``Nm`` notation: ``8n`` is an
eighth note, ``1m`` is one 4/4 bar, ``4n.`` a dotted quarter and ``8t`` an
eighth-note triplet. Durations are in beats (1.0 = one quarter note).
"""

import dataclasses
import logging
import math
import os
import typing

import mido

import midivary.scales


logger = logging.getLogger(__name__)

ONSET = "x"
SUSTAIN = "_"
SILENCE = "-"

SUBDIVISIONS: typing.Dict[str, float] = {
	"8m": 32.0,
	"4m": 16.0,
	"2m": 8.0,
	"1m": 4.0,
	"1n": 4.0,
	"2n.": 3.0,
	"2n": 2.0,
	"4n.": 1.5,
	"4n": 1.0,
	"4t": 2 / 3,
	"8n.": 0.75,
	"8n": 0.5,
	"8t": 1 / 3,
	"16n.": 0.375,
	"16n": 0.25,
	"16t": 1 / 6,
	"32n": 0.125,
}

DEFAULT_SUBDIV = "8n"
DEFAULT_TICKS_PER_BEAT = 480
DEFAULT_VELOCITY = 100
DEFAULT_CHANNEL = 0

# Largest tempo a set_tempo meta message can carry (microseconds per beat)
MAX_TEMPO = 0xFFFFFF


@dataclasses.dataclass
class ClipNote:

	"""
	A single note in a clip. Times are in beats from the start of the clip.
	"""

	pitch: str
	start: float
	duration: float


@dataclasses.dataclass
class Clip:

	"""The logical content of one output file."""

	notes: typing.List[str]
	pattern: str
	subdiv: str
	events: typing.List[ClipNote] = dataclasses.field(default_factory=list)

	@property
	def length (self) -> float:

		"""Clip length in beats."""

		return len(self.pattern) * SUBDIVISIONS[self.subdiv]


def is_valid_bpm (bpm: float) -> bool:

	"""Return True if ``bpm`` encodes to a set_tempo value between 1 and :data:`MAX_TEMPO`.

	The slowest usable tempo is about 3.58 BPM.
	"""

	try:
		bpm = float(bpm)
	except OverflowError:
		return False

	if not math.isfinite(bpm) or bpm <= 0:
		return False

	return 1 <= mido.bpm2tempo(bpm) <= MAX_TEMPO


def subdiv_to_beats (subdiv: str) -> float:

	"""Return the length of one step in beats for a subdivision label."""

	if subdiv not in SUBDIVISIONS:
		raise ValueError(f"Unknown subdivision: {subdiv!r}. Available: {', '.join(SUBDIVISIONS)}")

	return SUBDIVISIONS[subdiv]


def build_clip (notes: typing.Sequence[str], pattern: str, subdiv: str = DEFAULT_SUBDIV) -> Clip:

	"""Turn a palette and a step pattern into timed notes.

	Parameters:
		notes: Pitch names to cycle through, one per onset.
		pattern: Step pattern over ``x``, ``_`` and ``-``.
		subdiv: Step length label (see :data:`SUBDIVISIONS`).

	Example:
		```python
		clip = build_clip(["A2", "E3"], "x_x-")
		[(n.pitch, n.start, n.duration) for n in clip.events]
		# → [('A2', 0.0, 1.0), ('E3', 1.0, 0.5)]
		```
	"""

	step = subdiv_to_beats(subdiv)

	if not notes:
		raise ValueError("A clip needs at least one note")

	if not pattern:
		raise ValueError("A clip needs a non-empty pattern")

	invalid = sorted(set(pattern) - {ONSET, SUSTAIN, SILENCE})
	if invalid:
		raise ValueError(f"Unsupported pattern characters {invalid} in {pattern!r}")

	events: typing.List[ClipNote] = []
	current: typing.Optional[ClipNote] = None
	note_index = 0

	for i, char in enumerate(pattern):

		if char == ONSET:
			current = ClipNote(pitch=notes[note_index % len(notes)], start=i * step, duration=step)
			events.append(current)
			note_index += 1

		elif char == SUSTAIN:
			if current is not None:
				current.duration += step

		else:
			current = None

	return Clip(notes=list(notes), pattern=pattern, subdiv=subdiv, events=events)


def render_midi (
	clip: Clip,
	bpm: float,
	ticks_per_beat: int = DEFAULT_TICKS_PER_BEAT,
	velocity: int = DEFAULT_VELOCITY,
	channel: int = DEFAULT_CHANNEL,
	name: typing.Optional[str] = None
) -> mido.MidiFile:

	"""Encode a clip as a single-track Type 1 MIDI file at the given tempo."""

	if not is_valid_bpm(bpm):
		raise ValueError(f"bpm must be a finite tempo a MIDI file can carry, got {bpm!r}")

	mid = mido.MidiFile(type=1)
	mid.ticks_per_beat = ticks_per_beat
	track = mido.MidiTrack()
	mid.tracks.append(track)

	if name:
		track.append(mido.MetaMessage('track_name', name=name, time=0))

	track.append(mido.MetaMessage('set_tempo', tempo=mido.bpm2tempo(bpm), time=0))

	# (tick, order, message) - note_off sorts before note_on at the same tick
	timed: typing.List[typing.Tuple[int, int, mido.Message]] = []

	for note in clip.events:
		pitch = midivary.scales.note_to_midi(note.pitch)
		on_tick = round(note.start * ticks_per_beat)
		off_tick = round((note.start + note.duration) * ticks_per_beat)
		timed.append((on_tick, 1, mido.Message('note_on', channel=channel, note=pitch, velocity=velocity)))
		timed.append((off_tick, 0, mido.Message('note_off', channel=channel, note=pitch, velocity=0)))

	timed.sort(key=lambda x: (x[0], x[1]))

	last_tick = 0

	for tick, _, message in timed:
		message.time = tick - last_tick
		track.append(message)
		last_tick = tick

	end_tick = round(clip.length * ticks_per_beat)
	track.append(mido.MetaMessage('end_of_track', time=max(0, end_tick - last_tick)))

	return mid


def write_midi (clip: Clip, path: str, bpm: float, **kwargs: typing.Any) -> str:

	"""Render a clip and save it to ``path``. Returns the path written.

	Extra keyword arguments are passed to :func:`render_midi`.
	"""

	name = os.path.splitext(os.path.basename(path))[0]
	mid = render_midi(clip, bpm, name=name, **kwargs)
	mid.save(path)

	logger.debug(f"Wrote {path} ({len(clip.events)} notes, {bpm} BPM)")

	return path
