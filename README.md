# zerr

Building blocks for turning live audio into spatial movement across a speaker
array. You analyse audio blocks for features such as loudness, brightness and
noisiness. The feature values can then drive envelopes that place a sound on
a set of speakers described in a YAML file.

## Installation

```
pip install .
```

To install the test dependencies as well:

```
pip install ".[test]"
```

## Components

- `zerr.utils`
  - `SystemConfigs(sample_rate, block_size)`: a frozen dataclass. Both
    values must be positive.
  - `ZerrError`: raised for misconfiguration or misuse.
  - `get_logger(name)`: returns a logger under the `zerr` logger. That logger
    prints `[LEVEL] message` to stdout and is set to `ERROR` by default.
  - Helpers: `is_equal_to_1`, `is_equal_to_0`, `format_vector` and
    `apply_moving_average`.
- `zerr.dsp`
  - `LinearInterpolator`: steps from a start value to a stop value.
  - `RingBuffer(capacity)`: `enqueue` adds a block. `get_samples` returns all
    slots, oldest first.
  - `OnsetDetector(debounce_threshold)`: takes samples equal to 1 as onsets
    and zeroes any onset that follows the previous one too closely.
  - `FrequencyTransformer(frame_size)`: a Hann window and a scaled power
    spectrum with `frame_size // 2 + 1` bins.
- `zerr.features`
  - `AudioInputs`: holds `wave`, `spec` and `block`.
  - Feature extractors, all following the `initialize` / `fetch` /
    `extract` / `send` cycle: `RootMeanSquare`, `ZeroCrossingRate`, `Flux`,
    `Centroid`, `Rolloff`, `CrestFactor`, `Flatness` and `ZeroCrossings`.
  - Frame-level features send a block that ramps linearly from the previous
    value to the current one.
  - `ZeroCrossings` marks each sample where the sign changes with `1.0`.
- `zerr.featurebank`
  - `FeatureBank` keeps a rolling 1024-sample analysis window and computes
    its power spectrum.
  - It runs the activated extractors on each block you pass to `perform`.
    Each block may hold at most 1024 samples.
  - Built-in names: `rms`, `zcr`, `flx`, `ctd`, `rlf`, `cf`, `flt` and `zc`.
    You can add more with `register(name, factory)`.
  - An unknown name raises `ZerrError`.
- `zerr.mixing`
  - `AudioDisperser(num_channel, configs)` multiplies block 0 (the source)
    by blocks 1..n (one envelope per channel).
  - `EnvelopeCombinator(num_source, num_channel, configs, mode)` merges
    envelopes from several sources. The modes (`CombinationMode` or a
    string) are:
    - `add`: the sum of the sources.
    - `root`: the n-th root of the absolute product.
    - `max`: the maximum, never below 0.
- `zerr.speakermanager`
  - `SpeakerManager` loads a speaker layout from YAML. It tracks which
    speakers are active, the trajectory order and the connection topology.
  - It selects speakers by trajectory position, by trigger or by geometry.
  - It also provides `spherical_to_cartesian` and `cartesian_to_spherical`,
    which work in degrees.
- `zerr.envelopegenerator`
  - `EnvelopeGenerator` produces one gain envelope per speaker, in
    `trigger` or `trajectory` mode.
  - `calculate_gain(x, theta)` is the spread curve used in trigger mode.

## Feature extraction

```python
from zerr.utils import SystemConfigs
from zerr.featurebank import FeatureBank

configs = SystemConfigs(sample_rate=44100, block_size=64)
bank = FeatureBank()
bank.initialize(["rms", "ctd"], configs)

block = [0.0] * configs.block_size
rms_values, centroid_values = bank.perform(block)
```

## Speaker layouts

List each speaker under `standard`, keyed by its integer index. You can give
a position in cartesian or spherical form. Whichever form is missing is
derived from the other. `orientation` is optional.

```yaml
standard:
  1:
    position:
      cartesian: {x: 1.0, y: 0.0, z: 0.0}
  2:
    position:
      spherical: {azimuth: 90.0, elevation: 0.0, distance: 1.0}
    orientation: {yaw: 0.0, pitch: 0.0}
```

When the layout loads, every speaker is active and connected to every other.
The trajectory runs through the speakers in sorted order. You can change
this with:

- `set_active_speakers("set" | "add" | "del", indexes)`
- `set_trajectory_vector(indexes)`
- `set_topo_matrix("set" | "add" | "del", [main, *others])`

`SpeakerManager.initialize` raises `ZerrError` if the file cannot be read or
parsed.

## Envelope generation

`perform` takes three blocks and returns an array of shape
`(num_speakers, block_length)`. The three blocks are:

1. the trigger (or the trajectory position),
2. the spread,
3. the volume.

```python
import numpy as np
from zerr.utils import SystemConfigs
from zerr.envelopegenerator import EnvelopeGenerator

configs = SystemConfigs(sample_rate=44100, block_size=64)
gen = EnvelopeGenerator(configs, "layout.yaml", "trajectory")
gen.initialize()

trajectory = np.linspace(0.0, 0.99, configs.block_size)
spread = np.zeros(configs.block_size)
volume = np.ones(configs.block_size)
envelopes = gen.perform([trajectory, spread, volume])
```

In trajectory mode, the position (wrapped into [0, 1)) pans linearly between
two neighbouring speakers of the trajectory.

In trigger mode:

- A trigger value of 1 moves the sound to a randomly chosen connected
  speaker.
- Triggers closer together than the debounce interval are ignored. Set the
  interval in milliseconds with `set_trigger_interval`.
- The spread controls how much the other speakers receive, with the overall
  power normalized.

## Logging

`print_parameters` and the speaker manager report at `INFO` level. To see
that output, raise the package logger's level:

```python
import logging
logging.getLogger("zerr").setLevel(logging.INFO)
```

## What this package does not do

zerr does not open audio devices, connect to an audio server or run as a
standalone program. It has no command-line interface. You feed it blocks of
samples and use the arrays it returns. Wiring feature values to trajectories
and sending envelopes to real outputs is left to the calling code.

## Tests

```
pytest
```