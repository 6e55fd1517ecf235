"""
midivary - batch rhythmic variations of a MIDI bassline.

midivary reads a small control file (key, scale, tempo and a list of
generators) and writes a folder of MIDI clips. Each clip is a stochastic
variation of a base step pattern, so one idea becomes many near-identical
takes to audition or drop into a DAW.

How a generator becomes files:

- **Note palette.** Scale degrees (``noteSelection``, default ``[1]``) are
  looked up once in ``"{key}{octave} {scale}"``, e.g. ``[1, 5]`` in
  ``A2 minor`` gives ``['A2', 'E3']``.
- **Variation.** For every output file, each ``x``/``_`` step of the base
  pattern flips with a 25% chance. Onset density wanders around the
  base pattern rather than drifting.
- **Clip.** Onsets cycle through the palette, ``_`` holds the previous
  note and ``-`` is a rest. Every step is one ``subdiv`` long (``8n`` by
  default).
- **File.** One Type 1 MIDI file per variation, named
  ``{fileName}_{i}.mid``, at the control file's tempo.

Reproducibility: pass ``--seed`` (or ``seed`` in the settings file) and the
same control file gives the same clips.

Minimal example:

    ```python
    import midivary

    report = midivary.process_config_file("control.json", "out")
    print(report.summary())
    ```

Package-level exports: ``ControlFile``, ``InvalidControlFileError``,
``process_config_file``, ``process_control_file``, ``register_scale``.
"""

import midivary.control_file
import midivary.generator
import midivary.scales


ControlFile = midivary.control_file.ControlFile
InvalidControlFileError = midivary.control_file.InvalidControlFileError
process_config_file = midivary.generator.process_config_file
process_control_file = midivary.generator.process_control_file
register_scale = midivary.scales.register_scale
