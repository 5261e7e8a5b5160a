"""Modbus RTU framing over a serial line.

The serial object needs the pyserial interface: ``in_waiting``,
``read(size)``, ``write(data)`` and ``flush()``.
"""

import time
from enum import Enum

from relaymodbus.adu import ModbusADU

_MAX_RTU_FRAME = 256


class SerialConfig(Enum):
    """Character framing: data bits, parity and stop bits."""

    SERIAL_8N1 = "8N1"
    SERIAL_8N2 = "8N2"
    SERIAL_8E1 = "8E1"
    SERIAL_8E2 = "8E2"
    SERIAL_8O1 = "8O1"
    SERIAL_8O2 = "8O2"

    @property
    def bits_per_char(self):
        """Bits on the wire per character, start bit included."""
        parity_bits = 0 if self.value[1] == "N" else 1
        return 1 + 8 + parity_bits + int(self.value[2])


class ModbusCommError(Exception):
    """A frame could not be received."""


class ResponseTimeoutError(ModbusCommError):
    """Nothing arrived within the read timeout."""


class FrameError(ModbusCommError):
    """More data arrived after the end of a frame."""


class CrcError(ModbusCommError):
    """The received frame failed its CRC check."""


class ModbusRTUComm:
    """Reads and writes RTU frames with Modbus inter-character timing.

    *direction_control*, when given, is called with True before
    transmitting and with False afterwards, to drive an RS-485
    transceiver. ``timeout`` is the time in seconds ``read_adu`` waits
    for the first byte of a frame.
    """

    def __init__(self, serial, direction_control=None):
        self._serial = serial
        self._direction_control = direction_control
        self.timeout = 0.0
        self.char_timeout = None
        self.frame_timeout = None
        self.byte_period = None
        self.post_delay = None

    def _set_direction(self, transmit):
        if self._direction_control is not None:
            self._direction_control(transmit)

    def _require_started(self):
        if self.char_timeout is None:
            raise RuntimeError("begin() must be called first")

    def begin(self, baud, config=SerialConfig.SERIAL_8N1):
        """Set the timing for *baud* and *config* and drain pending input."""
        if baud <= 0:
            raise ValueError(f"invalid baud rate: {baud}")
        bits = SerialConfig(config).bits_per_char
        if baud <= 19200:
            char_us = bits * 2_500_000 // baud
            frame_us = bits * 4_500_000 // baud
        else:
            char_us = bits * 1_000_000 // baud + 750
            frame_us = bits * 1_000_000 // baud + 1750
        self.char_timeout = char_us / 1e6
        self.frame_timeout = frame_us / 1e6
        self.byte_period = (bits * 1_000_000 // baud) / 1e6
        self.post_delay = ((bits * 1_000_000 + 1_500_000) // baud) / 1e6
        self._set_direction(False)

        serial = self._serial
        last = time.monotonic()
        while time.monotonic() - last < self.frame_timeout:
            waiting = serial.in_waiting
            if waiting:
                serial.read(waiting)
                last = time.monotonic()

    def read_adu(self):
        """Receive one frame and return it as a ModbusADU.

        Raises ResponseTimeoutError, FrameError or CrcError.
        """
        self._require_started()
        serial = self._serial
        started = time.monotonic()
        while not serial.in_waiting:
            if time.monotonic() - started >= self.timeout:
                raise ResponseTimeoutError("no response within timeout")

        frame = bytearray()
        last = time.monotonic()
        while True:
            waiting = serial.in_waiting
            if waiting:
                frame += serial.read(min(waiting, _MAX_RTU_FRAME - len(frame)))
                last = time.monotonic()
            if len(frame) >= _MAX_RTU_FRAME or time.monotonic() - last > self.char_timeout:
                break

        adu = ModbusADU()
        adu.rtu[:len(frame)] = frame
        adu.rtu_len = len(frame)

        while time.monotonic() - last < self.frame_timeout:
            pass
        if serial.in_waiting:
            raise FrameError("data received after end of frame")
        if not adu.crc_good():
            raise CrcError("frame CRC mismatch")
        return adu

    def write_adu(self, adu):
        """Send *adu* as an RTU frame; return whether the echo matched it.

        The CRC of *adu* is updated before sending.
        """
        self._require_started()
        adu.update_crc()
        frame = adu.rtu_frame()
        if not frame:
            raise ValueError("ADU has no valid length to send")

        serial = self._serial
        echoed = bytearray()
        sent = 0
        transmitting = True
        self._set_direction(True)
        now = time.monotonic()
        tx_start = rx_start = now
        while True:
            now = time.monotonic()
            if transmitting:
                if sent == 0 or (sent < len(frame) and now - tx_start >= self.byte_period):
                    tx_start = now
                    serial.write(frame[sent:sent + 1])
                    serial.flush()
                    sent += 1
                if sent == len(frame) and now - tx_start >= self.post_delay:
                    self._set_direction(False)
                    transmitting = False
            waiting = serial.in_waiting
            if waiting:
                rx_start = now
                echoed += serial.read(waiting)
            if not transmitting and now - rx_start > self.char_timeout:
                break
        return bytes(echoed) == frame