import copy
import json
import pathlib
import typing

import pytest


BASE_CONTROL: typing.Dict[str, typing.Any] = {
	"key": "A",
	"scale": "minor",
	"bpm": 100,
	"variations": 2,
	"generators": [
		{
			"type": "bassline",
			"fileName": "bass",
			"params": {
				"octave": 2,
				"pattern": "x_x_",
				"noteSelection": [1, 5],
				"subdiv": "8n",
			},
		},
	],
}


@pytest.fixture
def control_dict () -> typing.Dict[str, typing.Any]:

	"""A fresh, valid control file dict that tests may modify."""

	return copy.deepcopy(BASE_CONTROL)


@pytest.fixture
def write_control (tmp_path: pathlib.Path) -> typing.Callable[..., str]:

	"""Return a helper that writes a control file into tmp_path and returns its path."""

	def _write (data: typing.Any, name: str = "control.json") -> str:

		path = tmp_path / name

		if isinstance(data, str):
			path.write_text(data, encoding="utf-8")
		else:
			path.write_text(json.dumps(data), encoding="utf-8")

		return str(path)

	return _write
