"""Eight-relay board with a four-digit seven-segment display.

The board drives three chained shift registers (relays, digit select,
segments) and reads eight opto-isolated inputs from a parallel-in shift
register. The hardware access is supplied as two callables.
"""

import threading

# Segment patterns, indexed by character number:
# 0-9, A, b, C, c, d, E, F, H, h, L, n, N, o, P, r, t, U, -, blank
SEGMENTS = (
    0x3F, 0x06, 0x5B, 0x4F, 0x66, 0x6D, 0x7D, 0x07, 0x7F, 0x6F,
    0x77, 0x7C, 0x39, 0x58, 0x5E, 0x79, 0x71, 0x76, 0x74, 0x38,
    0x54, 0x37, 0x5C, 0x73, 0x50, 0x78, 0x3E, 0x40, 0x00,
)
BLANK = 28
DIGIT_SELECT = (0xFE, 0xFD, 0xFB, 0xF7, 0xEF, 0xDF, 0xBF, 0x7F)

_DIGITS = 4
_PORTS = 8
_MAX_DISPLAY = 9999
_SAMPLE_AFTER = 200


class RelayBoard:
    """Relay, display and input state of the board.

    *read_inputs* returns the raw byte shifted in from the input register
    (an active input reads as 0). *shift_out* receives three bytes per
    refresh: the relay byte, the digit select and the segment pattern.
    ``tick`` is meant to be called every 3 ms; it refreshes one digit and
    samples the inputs about every 600 ms.
    """

    def __init__(self, read_inputs, shift_out):
        self._read_inputs = read_inputs
        self._shift_out = shift_out
        self._lock = threading.RLock()
        self._relays = 0
        self._digits = [BLANK] * _DIGITS
        self._digit_index = 0
        self._ticks = 0
        self._inputs = 0

    @property
    def relays(self):
        """The relay byte, bit n for relay n."""
        return self._relays

    def relay_set(self, port):
        if 0 <= port < _PORTS:
            with self._lock:
                self._relays |= 1 << port

    def relay_clear(self, port):
        if 0 <= port < _PORTS:
            with self._lock:
                self._relays &= ~(1 << port) & 0xFF

    def relay_clear_all(self):
        with self._lock:
            self._relays = 0

    def relay_read(self, port):
        return bool(self._relays & (1 << port))

    def set_display(self, value):
        """Show *value* as four decimal digits; values outside 0-9999 are ignored."""
        if not 0 <= value <= _MAX_DISPLAY:
            return
        value = int(value)
        with self._lock:
            self._digits = [int(digit) for digit in f"{value:04d}"]

    def off_display(self):
        with self._lock:
            self._digits = [BLANK] * _DIGITS

    def read_display(self):
        """Return the digit slots read back as a four-place decimal number."""
        thousands, hundreds, tens, ones = self._digits
        return thousands * 1000 + hundreds * 100 + tens * 10 + ones

    def read_input(self, pin):
        if not 0 <= pin < _PORTS:
            return False
        return bool(self._inputs & (1 << pin))

    def sample_inputs(self):
        """Read the input register; return the byte of active inputs."""
        raw = self._read_inputs()
        with self._lock:
            self._inputs = ~raw & 0xFF
            return self._inputs

    def display_one_digit(self):
        """Send the relay byte and the next display digit to the registers."""
        with self._lock:
            if self._digit_index >= _DIGITS:
                self._digit_index = 0
            index = self._digit_index
            self._digit_index += 1
            frame = bytes(
                (self._relays, DIGIT_SELECT[index], SEGMENTS[self._digits[index]])
            )
        self._shift_out(frame)

    def tick(self):
        """Timer step: refresh one digit, and sample inputs when due."""
        self.display_one_digit()
        with self._lock:
            due = self._ticks > _SAMPLE_AFTER
            if due:
                self._ticks = 0
            self._ticks += 1
        if due:
            self.sample_inputs()

    def coils_update(self, coils):
        """Set the relays from a sequence of coil states, one per relay."""
        relays = sum(1 << port for port, coil in enumerate(coils) if coil)
        with self._lock:
            self._relays = relays & 0xFF

    def discrete_inputs_update(self, discrete_inputs):
        """Fill *discrete_inputs* in place with the current input states."""
        with self._lock:
            discrete_inputs[:] = [
                self.read_input(pin) for pin in range(len(discrete_inputs))
            ]