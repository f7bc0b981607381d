import logging
import typing

import mido


logger = logging.getLogger(__name__)


def _prompt_for_device (kind: str, names: typing.List[str]) -> str:

	"""Ask the user to pick one of several devices on the console."""

	print(f"\nAvailable MIDI {kind} devices:\n")
	for i, name in enumerate(names, 1):
		print(f"  {i}. {name}")
	print()

	while True:
		try:
			choice = int(input(f"Select a device (1-{len(names)}): "))
			if 1 <= choice <= len(names):
				break
		except (ValueError, EOFError):
			pass
		print(f"Enter a number between 1 and {len(names)}.")

	selected = names[choice - 1]

	print(f"\nTip: To skip this prompt, set the device in config.yaml:\n")
	print(f"  midi:\n    {kind}_device: \"{selected}\"\n")

	return selected


def select_output_device (device_name: typing.Optional[str] = None, interactive: bool = True) -> typing.Tuple[typing.Optional[str], typing.Optional[typing.Any]]:

	"""
	Select and open a MIDI output device for the note engine.

	If ``device_name`` is provided, attempts to open that specific device.
	Otherwise auto-discovers: a single available device is used directly;
	several devices prompt the user on the console (only when ``interactive``
	is True - otherwise the first one is used).

	Returns:
		A tuple of (device_name, midi_out_object) or (None, None) on failure.
	"""

	try:
		outputs = mido.get_output_names()
		logger.info(f"Available MIDI outputs: {outputs}")

		if not outputs:
			logger.error("No MIDI output devices found.")
			return None, None

		if device_name is not None:
			if device_name not in outputs:
				logger.error(f"MIDI output device '{device_name}' not found. Available devices: {outputs}")
				return None, None
			selected = device_name

		elif len(outputs) == 1 or not interactive:
			selected = outputs[0]
			logger.info(f"Using MIDI output '{selected}'")

		else:
			selected = _prompt_for_device("output", outputs)

		midi_out = mido.open_output(selected)
		logger.info(f"Opened MIDI output: {selected}")
		return selected, midi_out

	except Exception as e:
		logger.error(f"Failed to open MIDI output: {e}")
		return None, None


def select_input_device (device_name: typing.Optional[str] = None, callback: typing.Optional[typing.Callable] = None) -> typing.Tuple[typing.Optional[str], typing.Optional[typing.Any]]:

	"""
	Select and open a MIDI input device delivering clock pulses, transport
	and notes.

	Input is optional: when ``device_name`` is None nothing is opened. If the
	name is not found, the first available input is used with a warning.

	Returns:
		A tuple of (device_name, midi_in_object) or (None, None) on failure.
	"""

	if device_name is None:
		return None, None

	try:
		inputs = mido.get_input_names()
		logger.info(f"Available MIDI inputs: {inputs}")

		target = device_name

		if target not in inputs:
			logger.warning(f"MIDI input device '{target}' not found.")
			if not inputs:
				return None, None
			target = inputs[0]
			logger.warning(f"Fallback to: {target}")

		midi_in = mido.open_input(target, callback=callback)
		logger.info(f"Opened MIDI input: {target}")
		return target, midi_in

	except Exception as e:
		logger.error(f"Failed to open MIDI input: {e}")
		return None, None
