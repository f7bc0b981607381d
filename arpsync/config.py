"""YAML configuration for an arpsync session.

Example ``config.yaml``::

	seed: 42
	midi:
	  output_device: "IAC Driver Bus 1"
	  input_device: null
	  channel: 0
	clock:
	  source: internal
	  bpm: 120
	arpeggiator:
	  enabled: true
	  pattern: up-down
	  octave_range: 2
	  clock_divisor: 4
	  gate_length: 0.5
	  timing: {kind: swing, amount: 0.5}
	  accent: downbeats
	  gate_probability: 0.9

Every key is optional. Values are not validated here - they pass through the
engines' setters, which clamp out-of-range numbers with a warning.
"""

import dataclasses
import logging
import os
import typing

import yaml

import arpsync.constants.clock
import arpsync.constants.velocity


logger = logging.getLogger(__name__)


def load_config (config_path: str = 'config.yaml') -> dict:

	"""
	Load configuration from a YAML file.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return {}

	with open(config_path, 'r') as f:
		return yaml.safe_load(f) or {}


def _section (data: typing.Dict[str, typing.Any], name: str) -> typing.Dict[str, typing.Any]:

	section = data.get(name) or {}

	if not isinstance(section, dict):
		raise ValueError(f"Config section '{name}' must be a mapping, got {type(section).__name__}")

	return section


def _timing_component (component: typing.Any) -> typing.Tuple[str, float]:

	if not isinstance(component, dict) or 'kind' not in component:
		raise ValueError(f"Timing component must be a mapping with a 'kind' key, got {component!r}")

	return (component['kind'], component.get('amount', 0.0))


@dataclasses.dataclass
class SessionConfig:

	"""Settings used to build a ``Session``."""

	seed: typing.Optional[int] = None

	# midi
	output_device: typing.Optional[str] = None
	input_device: typing.Optional[str] = None
	channel: int = 0

	# clock
	clock_source: str = "internal"
	bpm: float = arpsync.constants.clock.DEFAULT_BPM

	# arpeggiator
	enabled: bool = True
	pattern: str = "up"
	octave_range: int = 1
	clock_divisor: int = arpsync.constants.clock.DEFAULT_CLOCK_DIVISOR
	gate_length: float = arpsync.constants.clock.DEFAULT_GATE_LENGTH
	notes_per_step: int = 1
	sliding_window_overlap: bool = True
	ratchet_count: int = 1
	velocity: int = arpsync.constants.velocity.DEFAULT_VELOCITY
	latch: bool = False
	timing_kind: str = "straight"
	timing_amount: float = 0.0
	timing_components: typing.List[typing.Tuple[str, float]] = dataclasses.field(default_factory=list)
	velocity_humanize: float = 0.0
	accent: str = "none"
	gate_probability: float = 1.0
	notes: typing.List[int] = dataclasses.field(default_factory=list)


	@classmethod
	def from_dict (cls, data: typing.Optional[typing.Dict[str, typing.Any]]) -> "SessionConfig":

		"""
		Build a config from the dictionary returned by ``load_config``.
		"""

		data = data or {}

		if not isinstance(data, dict):
			raise ValueError(f"Config must be a mapping, got {type(data).__name__}")

		midi = _section(data, 'midi')
		clock = _section(data, 'clock')
		arp = _section(data, 'arpeggiator')
		timing = arp.get('timing') or {}

		if not isinstance(timing, dict):
			timing = {'kind': str(timing)}

		defaults = cls()

		return cls(
			seed = data.get('seed', defaults.seed),
			output_device = midi.get('output_device', defaults.output_device),
			input_device = midi.get('input_device', defaults.input_device),
			channel = midi.get('channel', defaults.channel),
			clock_source = clock.get('source', defaults.clock_source),
			bpm = clock.get('bpm', defaults.bpm),
			enabled = arp.get('enabled', defaults.enabled),
			pattern = arp.get('pattern', defaults.pattern),
			octave_range = arp.get('octave_range', defaults.octave_range),
			clock_divisor = arp.get('clock_divisor', defaults.clock_divisor),
			gate_length = arp.get('gate_length', defaults.gate_length),
			notes_per_step = arp.get('notes_per_step', defaults.notes_per_step),
			sliding_window_overlap = arp.get('sliding_window_overlap', defaults.sliding_window_overlap),
			ratchet_count = arp.get('ratchet_count', defaults.ratchet_count),
			velocity = arp.get('velocity', defaults.velocity),
			latch = arp.get('latch', defaults.latch),
			timing_kind = timing.get('kind', defaults.timing_kind),
			timing_amount = timing.get('amount', defaults.timing_amount),
			timing_components = [_timing_component(component) for component in timing.get('components') or []],
			velocity_humanize = arp.get('velocity_humanize', defaults.velocity_humanize),
			accent = arp.get('accent', defaults.accent),
			gate_probability = arp.get('gate_probability', defaults.gate_probability),
			notes = list(arp.get('notes', defaults.notes))
		)
