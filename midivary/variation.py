"""Rhythmic variation of step patterns.

A pattern is a string with one character per step: ``x`` starts a note and
``_`` does not. :func:`vary` flips each ``x``/``_`` step independently with a
fixed probability. Flipping is symmetric, so the onset count of repeated
variations wanders around the base pattern instead of drifting up or down.
"""

import random
import typing


HIT = "x"
REST = "_"

DEFAULT_PROBABILITY = 0.25

_TOGGLE: typing.Dict[str, str] = {HIT: REST, REST: HIT}


def vary (pattern: str, rng: typing.Optional[random.Random] = None, probability: float = DEFAULT_PROBABILITY) -> str:

	"""Return a stochastic variation of ``pattern``.

	Each step is considered on its own: with chance ``probability`` an ``x``
	becomes ``_`` and a ``_`` becomes ``x``. Other characters never change,
	and the result always has the same length as the input.

	Parameters:
		pattern: Base step pattern, e.g. ``"x_x_x__x"``.
		rng: Random number generator. A fresh unseeded one is used when omitted,
			so pass a seeded ``random.Random`` for repeatable output.
		probability: Per-step chance of flipping, between 0.0 and 1.0.

	Example:
		```python
		rng = random.Random(7)
		vary("x_x_x_x_", rng)
		```
	"""

	if not 0.0 <= probability <= 1.0:
		raise ValueError("probability must be between 0.0 and 1.0")

	if rng is None:
		rng = random.Random()

	steps: typing.List[str] = []

	for char in pattern:
		# One draw per step, whatever the character
		if rng.random() < probability:
			steps.append(_TOGGLE.get(char, char))
		else:
			steps.append(char)

	return "".join(steps)


def onset_count (pattern: str) -> int:

	"""Return the number of ``x`` steps in a pattern."""

	return pattern.count(HIT)
