import os
import pathlib
import random
import typing

import mido
import pytest

import midivary.clip
import midivary.control_file
import midivary.generator
import midivary.palette
import midivary.settings


def _control (data: dict) -> midivary.control_file.ControlFile:

	assert midivary.control_file.is_control_file(data)
	return midivary.control_file.ControlFile.from_dict(data)


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------

def test_end_to_end_scenario (tmp_path: pathlib.Path, write_control, control_dict: dict) -> None:

	"""Two variations of one bassline give bass_1.mid and bass_2.mid."""

	out = tmp_path / "out"
	report = midivary.generator.process_config_file(write_control(control_dict), str(out))

	assert report.ok
	assert sorted(os.listdir(out)) == ["bass_1.mid", "bass_2.mid"]
	assert report.files == [str(out / "bass_1.mid"), str(out / "bass_2.mid")]

	for path in report.files:
		mid = mido.MidiFile(path)
		tempos = [m.tempo for m in mid.tracks[0] if m.type == 'set_tempo']
		pitches = {m.note for m in mid.tracks[0] if m.type == 'note_on'}

		assert tempos == [mido.bpm2tempo(100)]
		# A2 and E3 only
		assert pitches <= {45, 52}


def test_clip_parameters_passed_through (tmp_path: pathlib.Path, control_dict: dict, monkeypatch: pytest.MonkeyPatch) -> None:

	"""Each clip gets the 2-note palette, a 4-step variation and the subdivision."""

	clips: typing.List[midivary.clip.Clip] = []
	real_build_clip = midivary.clip.build_clip

	def recording_build_clip (notes, pattern, subdiv):
		clip = real_build_clip(notes, pattern, subdiv)
		clips.append(clip)
		return clip

	monkeypatch.setattr(midivary.clip, "build_clip", recording_build_clip)

	midivary.generator.process_control_file(_control(control_dict), str(tmp_path))

	assert len(clips) == 2

	for clip in clips:
		assert clip.notes == ["A2", "E3"]
		assert len(clip.pattern) == 4
		assert set(clip.pattern) <= {"x", "_"}
		assert clip.subdiv == "8n"


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

def test_orchestration_counts (tmp_path: pathlib.Path, control_dict: dict, monkeypatch: pytest.MonkeyPatch) -> None:

	"""N variations mean N clip builds and N writes, named 1..N."""

	control_dict["variations"] = 5
	build_calls: typing.List[tuple] = []
	write_calls: typing.List[tuple] = []

	def fake_build_clip (notes, pattern, subdiv):
		build_calls.append((tuple(notes), pattern, subdiv))
		return midivary.clip.Clip(notes=list(notes), pattern=pattern, subdiv=subdiv)

	def fake_write_midi (clip, path, bpm, **kwargs):
		write_calls.append((path, bpm))
		return path

	monkeypatch.setattr(midivary.clip, "build_clip", fake_build_clip)
	monkeypatch.setattr(midivary.clip, "write_midi", fake_write_midi)

	midivary.generator.process_control_file(_control(control_dict), str(tmp_path))

	assert len(build_calls) == 5
	assert [os.path.basename(path) for path, _ in write_calls] == [f"bass_{i}.mid" for i in range(1, 6)]
	assert all(bpm == 100 for _, bpm in write_calls)


def test_palette_resolved_once_per_generator (tmp_path: pathlib.Path, control_dict: dict, monkeypatch: pytest.MonkeyPatch) -> None:

	control_dict["variations"] = 4
	calls = []
	real_resolve = midivary.palette.resolve_palette

	def counting_resolve (**kwargs):
		calls.append(kwargs)
		return real_resolve(**kwargs)

	monkeypatch.setattr(midivary.palette, "resolve_palette", counting_resolve)

	midivary.generator.process_control_file(_control(control_dict), str(tmp_path))

	assert len(calls) == 1
	assert calls[0] == {"key": "A", "scale": "minor", "octave": 2, "degrees": (1, 5)}


def test_defaults_for_optional_params (tmp_path: pathlib.Path, control_dict: dict, monkeypatch: pytest.MonkeyPatch) -> None:

	"""Without noteSelection and subdiv the root note and 8n are used."""

	params = control_dict["generators"][0]["params"]
	del params["noteSelection"]
	del params["subdiv"]

	clips = []
	monkeypatch.setattr(midivary.clip, "write_midi", lambda clip, path, bpm, **kwargs: clips.append(clip) or path)

	midivary.generator.process_control_file(_control(control_dict), str(tmp_path))

	assert [c.notes for c in clips] == [["A2"], ["A2"]]
	assert [c.subdiv for c in clips] == ["8n", "8n"]


def test_settings_default_subdiv (tmp_path: pathlib.Path, control_dict: dict, monkeypatch: pytest.MonkeyPatch) -> None:

	del control_dict["generators"][0]["params"]["subdiv"]
	clips = []
	monkeypatch.setattr(midivary.clip, "write_midi", lambda clip, path, bpm, **kwargs: clips.append(clip) or path)

	settings = midivary.settings.GenerationSettings(default_subdiv="16n")
	midivary.generator.process_control_file(_control(control_dict), str(tmp_path), settings=settings)

	assert {c.subdiv for c in clips} == {"16n"}


def test_output_directory_is_created (tmp_path: pathlib.Path, control_dict: dict) -> None:

	out = tmp_path / "nested" / "deeper" / "out"

	midivary.generator.process_control_file(_control(control_dict), str(out))

	assert out.is_dir()
	assert len(list(out.glob("*.mid"))) == 2


def test_empty_generator_list (tmp_path: pathlib.Path, control_dict: dict) -> None:

	control_dict["generators"] = []
	out = tmp_path / "out"

	report = midivary.generator.process_control_file(_control(control_dict), str(out))

	assert report.ok
	assert report.results == []
	assert os.listdir(out) == []


def test_generators_run_in_order (tmp_path: pathlib.Path, control_dict: dict, monkeypatch: pytest.MonkeyPatch) -> None:

	second = {"type": "bassline", "fileName": "low", "params": {"octave": 1, "pattern": "x___"}}
	control_dict["generators"].append(second)

	written = []
	monkeypatch.setattr(midivary.clip, "write_midi", lambda clip, path, bpm, **kwargs: written.append(os.path.basename(path)) or path)

	report = midivary.generator.process_control_file(_control(control_dict), str(tmp_path))

	assert written == ["bass_1.mid", "bass_2.mid", "low_1.mid", "low_2.mid"]
	assert [r.file_name for r in report.results] == ["bass", "low"]


# ---------------------------------------------------------------------------
# Generator kinds
# ---------------------------------------------------------------------------

def test_stabs_are_skipped (tmp_path: pathlib.Path, control_dict: dict, caplog: pytest.LogCaptureFixture) -> None:

	"""Stabs produce no files and a skipped result."""

	control_dict["generators"] = [{"type": "stabs", "fileName": "stab", "params": {"octave": 4, "pattern": "x___x___"}}]

	report = midivary.generator.process_control_file(_control(control_dict), str(tmp_path))

	assert report.ok
	assert report.results[0].status == midivary.generator.STATUS_SKIPPED
	assert list(tmp_path.glob("*.mid")) == []
	assert "not implemented" in caplog.text


def test_every_generator_type_has_a_handler () -> None:

	assert set(midivary.generator.GENERATOR_HANDLERS) == set(midivary.control_file.GENERATOR_TYPES)


def test_missing_handler_is_detected (monkeypatch: pytest.MonkeyPatch) -> None:

	monkeypatch.setattr(midivary.control_file, "GENERATOR_TYPES", ("bassline", "stabs", "pads"))

	with pytest.raises(RuntimeError, match="pads"):
		midivary.generator._check_handlers()


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

def test_failing_generator_does_not_stop_others (tmp_path: pathlib.Path, control_dict: dict) -> None:

	"""An out-of-range degree fails its generator; the next one still runs."""

	broken = {"type": "bassline", "fileName": "broken", "params": {"octave": 2, "pattern": "x_x_", "noteSelection": [9]}}
	control_dict["generators"].insert(0, broken)

	report = midivary.generator.process_control_file(_control(control_dict), str(tmp_path))

	assert not report.ok
	assert [r.status for r in report.results] == ["failed", "written"]
	assert "out of range" in report.failures[0].error
	assert sorted(p.name for p in tmp_path.glob("*.mid")) == ["bass_1.mid", "bass_2.mid"]
	assert "1 failed" in report.summary()


def test_written_files_are_kept_after_later_failure (tmp_path: pathlib.Path, control_dict: dict, monkeypatch: pytest.MonkeyPatch) -> None:

	"""A write error mid-generator keeps the files already on disk."""

	control_dict["variations"] = 3
	real_write = midivary.clip.write_midi

	def flaky_write (clip, path, bpm, **kwargs):
		if path.endswith("_3.mid"):
			raise OSError("disk full")
		return real_write(clip, path, bpm, **kwargs)

	monkeypatch.setattr(midivary.clip, "write_midi", flaky_write)

	report = midivary.generator.process_control_file(_control(control_dict), str(tmp_path))

	assert report.failures[0].error == "disk full"
	assert sorted(p.name for p in tmp_path.glob("*.mid")) == ["bass_1.mid", "bass_2.mid"]


def test_unknown_scale_is_a_generator_failure (tmp_path: pathlib.Path, control_dict: dict) -> None:

	control_dict["scale"] = "nonexistent"

	report = midivary.generator.process_control_file(_control(control_dict), str(tmp_path))

	assert report.results[0].status == "failed"
	assert "Unknown scale" in report.results[0].error


def test_invalid_control_file_writes_nothing (tmp_path: pathlib.Path, write_control) -> None:

	"""Validation fails before the output directory is created."""

	out = tmp_path / "out"

	with pytest.raises(midivary.control_file.InvalidControlFileError):
		midivary.generator.process_config_file(write_control({"key": "C"}), str(out))

	assert not out.exists()


# ---------------------------------------------------------------------------
# Randomness
# ---------------------------------------------------------------------------

def _patterns (tmp_path: pathlib.Path, control: midivary.control_file.ControlFile, monkeypatch: pytest.MonkeyPatch, **kwargs) -> typing.List[str]:

	patterns: typing.List[str] = []
	monkeypatch.setattr(midivary.clip, "write_midi", lambda clip, path, bpm, **kw: patterns.append(clip.pattern) or path)
	midivary.generator.process_control_file(control, str(tmp_path), **kwargs)
	monkeypatch.undo()

	return patterns


def test_seed_makes_runs_repeatable (tmp_path: pathlib.Path, control_dict: dict, monkeypatch: pytest.MonkeyPatch) -> None:

	control_dict["variations"] = 8
	control_dict["generators"][0]["params"]["pattern"] = "x_x_x_x_x_x_x_x_"
	control = _control(control_dict)
	settings = midivary.settings.GenerationSettings(seed=1234)

	first = _patterns(tmp_path, control, monkeypatch, settings=settings)
	second = _patterns(tmp_path, control, monkeypatch, settings=settings)
	third = _patterns(tmp_path, control, monkeypatch, rng=random.Random(1234))

	assert first == second == third
	assert len(first) == 8


def test_seeded_files_are_identical (tmp_path: pathlib.Path, control_dict: dict) -> None:

	control = _control(control_dict)
	settings = midivary.settings.GenerationSettings(seed=5)

	a = midivary.generator.process_control_file(control, str(tmp_path / "a"), settings=settings)
	b = midivary.generator.process_control_file(control, str(tmp_path / "b"), settings=settings)

	for path_a, path_b in zip(a.files, b.files):
		assert pathlib.Path(path_a).read_bytes() == pathlib.Path(path_b).read_bytes()


def test_generators_get_independent_streams (tmp_path: pathlib.Path, control_dict: dict, monkeypatch: pytest.MonkeyPatch) -> None:

	"""Two identical generators in one seeded run vary differently."""

	control_dict["variations"] = 4
	control_dict["generators"][0]["params"]["pattern"] = "x_x_x_x_x_x_x_x_"
	twin = dict(control_dict["generators"][0], fileName="twin")
	control_dict["generators"].append(twin)

	patterns = _patterns(tmp_path, _control(control_dict), monkeypatch, settings=midivary.settings.GenerationSettings(seed=1))

	assert patterns[:4] != patterns[4:]


def test_mutation_probability_setting (tmp_path: pathlib.Path, control_dict: dict, monkeypatch: pytest.MonkeyPatch) -> None:

	"""A zero mutation probability writes the base pattern every time."""

	settings = midivary.settings.GenerationSettings(mutation_probability=0.0)

	patterns = _patterns(tmp_path, _control(control_dict), monkeypatch, settings=settings)

	assert patterns == ["x_x_", "x_x_"]


def test_variation_path () -> None:

	assert midivary.generator.variation_path("out", "bass", 3) == os.path.join("out", "bass_3.mid")
