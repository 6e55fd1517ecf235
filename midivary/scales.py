"""Scale definitions and pitch name utilities.

This module turns a tonic and a scale name into the ordered pitch names of
one octave of that scale, e.g. ``"A2 minor"`` → ``["A2", "B2", "C3", ...]``.
It is the music-theory lookup used by the palette resolver.

Module-level constants:
- `NOTE_NAME_TO_PC`: Maps note names (e.g., `"C"`, `"F#"`, `"Bb"`) to pitch classes (0-11)
- `SCALE_INTERVALS`: Maps scale names to interval lists (semitones from the tonic)

Scale names are matched case-insensitively, and spaces or hyphens are read as
underscores, so ``"harmonic minor"`` and ``"harmonic_minor"`` are the same scale.
"""

import re
import typing


NOTE_NAME_TO_PC: typing.Dict[str, int] = {
	"C": 0,
	"C#": 1,
	"Db": 1,
	"D": 2,
	"D#": 3,
	"Eb": 3,
	"E": 4,
	"F": 5,
	"F#": 6,
	"Gb": 6,
	"G": 7,
	"G#": 8,
	"Ab": 8,
	"A": 9,
	"A#": 10,
	"Bb": 10,
	"B": 11,
}

LETTERS: str = "CDEFGAB"

LETTER_TO_PC: typing.Dict[str, int] = {
	"C": 0,
	"D": 2,
	"E": 4,
	"F": 5,
	"G": 7,
	"A": 9,
	"B": 11,
}

PC_TO_SHARP_NAME: typing.List[str] = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

PC_TO_FLAT_NAME: typing.List[str] = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]


SCALE_INTERVALS: typing.Dict[str, typing.List[int]] = {
	"major": [0, 2, 4, 5, 7, 9, 11],
	"minor": [0, 2, 3, 5, 7, 8, 10],
	"dorian": [0, 2, 3, 5, 7, 9, 10],
	"phrygian": [0, 1, 3, 5, 7, 8, 10],
	"lydian": [0, 2, 4, 6, 7, 9, 11],
	"mixolydian": [0, 2, 4, 5, 7, 9, 10],
	"locrian": [0, 1, 3, 5, 6, 8, 10],
	"harmonic_minor": [0, 2, 3, 5, 7, 8, 11],
	"melodic_minor": [0, 2, 3, 5, 7, 9, 11],
	"phrygian_dominant": [0, 1, 4, 5, 7, 8, 10],
	"hungarian_minor": [0, 2, 3, 6, 7, 8, 11],
	"double_harmonic": [0, 1, 4, 5, 7, 8, 11],
	"lydian_dominant": [0, 2, 4, 6, 7, 9, 10],
	"major_pentatonic": [0, 2, 4, 7, 9],
	"minor_pentatonic": [0, 3, 5, 7, 10],
	"blues": [0, 3, 5, 6, 7, 10],
	"whole_tone": [0, 2, 4, 6, 8, 10],
	"chromatic": [0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11],
}

SCALE_ALIASES: typing.Dict[str, str] = {
	"ionian": "major",
	"aeolian": "minor",
	"natural_minor": "minor",
	"pentatonic": "major_pentatonic",
	"minor_blues": "blues",
}


# Note names carry at most a double sharp or double flat
MAX_ACCIDENTALS = 2

_NOTE_PATTERN = re.compile(r"^([A-Ga-g])(#{1,2}|b{1,2})?(-?\d+)?$")


def normalize_scale_name (name: str) -> str:

	"""Return the registry key for a scale name (``"Harmonic Minor"`` → ``"harmonic_minor"``)."""

	key = re.sub(r"[\s\-]+", "_", name.strip().lower())
	return SCALE_ALIASES.get(key, key)


def get_scale_intervals (name: str) -> typing.List[int]:

	"""
	Return the interval list for a named scale.

	Raises:
		ValueError: If the scale is not registered.
	"""

	key = normalize_scale_name(name)

	if key not in SCALE_INTERVALS:
		available = ", ".join(sorted(SCALE_INTERVALS))
		raise ValueError(f"Unknown scale: {name!r}. Available: {available}")

	return list(SCALE_INTERVALS[key])


def register_scale (name: str, intervals: typing.List[int]) -> None:

	"""Register a custom scale so control files can refer to it by name.

	Parameters:
		name: Scale name. Normalised the same way lookups are.
		intervals: Ascending semitone offsets from the tonic, starting at 0,
			all below 12.

	Example:
		```python
		register_scale("hirajoshi", [0, 2, 3, 7, 8])
		scale_notes("D3 hirajoshi")  # → ['D3', 'E3', 'F3', 'A3', 'Bb3']
		```
	"""

	if not intervals or intervals[0] != 0:
		raise ValueError("Scale intervals must start at 0")

	if any(b <= a for a, b in zip(intervals, intervals[1:])):
		raise ValueError("Scale intervals must be strictly ascending")

	if intervals[-1] > 11:
		raise ValueError("Scale intervals must stay within one octave (0-11)")

	SCALE_INTERVALS[normalize_scale_name(name)] = list(intervals)


def parse_note (name: str) -> typing.Tuple[str, int, typing.Optional[int]]:

	"""
	Split a note name into (letter, accidental offset, octave).

	The octave is ``None`` when the name has no octave number (``"F#"``).
	"""

	match = _NOTE_PATTERN.match(name.strip())

	if match is None:
		raise ValueError(f"Unknown note name: {name!r}. Expected e.g. 'C', 'F#3', 'Bb2'.")

	letter, accidental, octave = match.groups()
	accidental = accidental or ""
	offset = len(accidental) if accidental.startswith("#") else -len(accidental)

	return letter.upper(), offset, int(octave) if octave is not None else None


def key_name_to_pc (key_name: str) -> int:

	"""Validate a key name (no octave) and return its pitch class (0–11)."""

	letter, offset, octave = parse_note(key_name)

	if octave is not None:
		raise ValueError(f"Key name must not include an octave: {key_name!r}")

	return (LETTER_TO_PC[letter] + offset) % 12


def note_to_midi (name: str) -> int:

	"""Return the MIDI note number for a pitch name such as ``"A2"`` (C4 = 60).

	Example:
		```python
		note_to_midi("C4")   # → 60
		note_to_midi("A2")   # → 45
		note_to_midi("Cb4")  # → 59
		```
	"""

	letter, offset, octave = parse_note(name)

	if octave is None:
		raise ValueError(f"Note name needs an octave: {name!r}")

	midi = (octave + 1) * 12 + LETTER_TO_PC[letter] + offset

	if not 0 <= midi <= 127:
		raise ValueError(f"Note {name!r} is outside the MIDI range (0-127)")

	return midi


def _accidental (offset: int) -> str:

	return "#" * offset if offset > 0 else "b" * -offset


def _spell_diatonic (tonic_letter: str, tonic_midi: int, intervals: typing.List[int]) -> typing.Optional[typing.List[str]]:

	"""Spell a seven-note scale with one letter per degree.

	Returns None when a degree would need more than a double accidental.
	"""

	start = LETTERS.index(tonic_letter)
	names: typing.List[str] = []

	for degree, interval in enumerate(intervals):
		midi = tonic_midi + interval
		letter = LETTERS[(start + degree) % 7]

		# Octave of the letter, chosen so the accidental stays within a whole tone
		octave = (midi - LETTER_TO_PC[letter] + 2) // 12 - 1
		offset = midi - ((octave + 1) * 12 + LETTER_TO_PC[letter])

		if abs(offset) > MAX_ACCIDENTALS:
			return None

		names.append(f"{letter}{_accidental(offset)}{octave}")

	return names


def _spell_chromatic (tonic_midi: int, intervals: typing.List[int], use_flats: bool) -> typing.List[str]:

	table = PC_TO_FLAT_NAME if use_flats else PC_TO_SHARP_NAME
	names: typing.List[str] = []

	for interval in intervals:
		midi = tonic_midi + interval
		names.append(f"{table[midi % 12]}{midi // 12 - 1}")

	return names


def scale_notes (query: str) -> typing.List[str]:

	"""Return the pitch names of one octave of a scale, starting at the tonic.

	Parameters:
		query: ``"{tonic}{octave} {scale name}"``, e.g. ``"C3 minor"`` or
			``"F#2 harmonic minor"``.

	Returns:
		Ascending pitch names. Seven-note scales are spelled with one letter per
		degree when no degree needs more than a double accidental; other scales
		use sharps, or flats when the tonic is a flat or F.

	Example:
		```python
		scale_notes("C3 minor")  # → ['C3', 'D3', 'Eb3', 'F3', 'G3', 'Ab3', 'Bb3']
		scale_notes("A2 minor")  # → ['A2', 'B2', 'C3', 'D3', 'E3', 'F3', 'G3']
		```
	"""

	tonic, _, scale_name = query.strip().partition(" ")

	if not scale_name.strip():
		raise ValueError(f"Expected '<tonic><octave> <scale>', got {query!r}")

	letter, offset, octave = parse_note(tonic)

	if octave is None:
		raise ValueError(f"Tonic needs an octave: {tonic!r}")

	intervals = get_scale_intervals(scale_name)
	tonic_midi = note_to_midi(tonic)

	if len(intervals) == 7:
		names = _spell_diatonic(letter, tonic_midi, intervals)
		if names is not None:
			return names

	use_flats = offset < 0 or (letter == "F" and offset == 0)
	return _spell_chromatic(tonic_midi, intervals, use_flats)
