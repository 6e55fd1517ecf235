import logging
import typing

import midivary.scales


logger = logging.getLogger(__name__)


class ScaleDegreeError (ValueError):

	"""Raised when a scale degree falls outside the resolved scale."""

	def __init__ (self, degree: int, scale_length: int, query: str) -> None:

		self.degree = degree
		self.scale_length = scale_length
		self.query = query

		super().__init__(
			f"Scale degree {degree} is out of range for '{query}' (valid degrees: 1-{scale_length})"
		)


def resolve_palette (
	key: str,
	scale: str,
	octave: int,
	degrees: typing.Optional[typing.Sequence[int]] = None
) -> typing.List[str]:

	"""Return the pitch names selected by 1-based scale degrees.

	The scale is looked up once as ``"{key}{octave} {scale}"`` and each degree
	picks one entry, in the order given. Degree 1 is the tonic. When
	``degrees`` is ``None`` only the tonic is returned.

	Parameters:
		key: Tonic note name without octave (``"A"``, ``"F#"``, ``"Bb"``).
		scale: Scale name known to :mod:`midivary.scales`.
		octave: Octave of the tonic.
		degrees: 1-based scale degrees. Repeats are allowed.

	Raises:
		ScaleDegreeError: If a degree is below 1 or beyond the scale length.
		ValueError: If the key or scale is unknown.

	Example:
		```python
		resolve_palette("C", "major", 3, [1, 3])  # → ['C3', 'E3']
		resolve_palette("A", "minor", 2)          # → ['A2']
		```
	"""

	if degrees is None:
		degrees = [1]

	# Validates the key on its own so an octave typed into it is reported clearly
	midivary.scales.key_name_to_pc(key)

	query = f"{key}{octave} {scale}"
	notes = midivary.scales.scale_notes(query)

	palette: typing.List[str] = []

	for degree in degrees:
		if degree < 1 or degree > len(notes):
			raise ScaleDegreeError(degree, len(notes), query)
		palette.append(notes[degree - 1])

	logger.debug(f"Degrees {list(degrees)} of '{query}' → {palette}")

	return palette
