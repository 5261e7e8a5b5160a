"""Modbus application data unit shared by the RTU and TCP framings.

The unit is one fixed buffer. The TCP header starts at byte 0, the RTU
frame (unit id onwards) at byte 6, the PDU (function code onwards) at
byte 7 and the function data at byte 8.
"""

_ADU_SIZE = 262
_TCP_OFFSET = 0
_RTU_OFFSET = 6
_PDU_OFFSET = 7
_DATA_OFFSET = 8
_LENGTH_OFFSET = 4
_UNIT_ID_OFFSET = 6
_MIN_LENGTH = 3
_MAX_LENGTH = 254


def crc16(data):
    """Return the Modbus CRC-16 of *data* (an iterable of byte values)."""
    crc = 0xFFFF
    for byte in data:
        crc ^= byte
        for _ in range(8):
            if crc & 1:
                crc = (crc >> 1) ^ 0xA001
            else:
                crc >>= 1
    return crc


def div8_round_up(value):
    """Return the number of bytes needed to hold *value* bits."""
    return (value + 7) >> 3


class ModbusADU:
    """A Modbus ADU with views for its RTU, TCP, PDU and data parts."""

    __slots__ = ("_buffer",)

    def __init__(self):
        self._buffer = bytearray(_ADU_SIZE)

    # Views into the shared buffer.

    @property
    def rtu(self):
        """Writable view starting at the RTU unit id."""
        return memoryview(self._buffer)[_RTU_OFFSET:]

    @property
    def tcp(self):
        """Writable view starting at the TCP header."""
        return memoryview(self._buffer)[_TCP_OFFSET:]

    @property
    def pdu(self):
        """Writable view starting at the function code."""
        return memoryview(self._buffer)[_PDU_OFFSET:]

    @property
    def data(self):
        """Writable view starting at the function data."""
        return memoryview(self._buffer)[_DATA_OFFSET:]

    # Big-endian 16-bit helpers on absolute buffer offsets.

    def _get_register(self, offset):
        return (self._buffer[offset] << 8) | self._buffer[offset + 1]

    def _set_register(self, offset, value):
        value &= 0xFFFF
        self._buffer[offset] = value >> 8
        self._buffer[offset + 1] = value & 0xFF

    # Header fields.

    @property
    def transaction_id(self):
        return self._get_register(_TCP_OFFSET)

    @transaction_id.setter
    def transaction_id(self, value):
        self._set_register(_TCP_OFFSET, value)

    @property
    def protocol_id(self):
        return self._get_register(_TCP_OFFSET + 2)

    @protocol_id.setter
    def protocol_id(self, value):
        self._set_register(_TCP_OFFSET + 2, value)

    @property
    def length(self):
        """Bytes from unit id to end of data, or 0 when out of range."""
        value = self._get_register(_LENGTH_OFFSET)
        return value if _MIN_LENGTH <= value <= _MAX_LENGTH else 0

    @length.setter
    def length(self, value):
        if not _MIN_LENGTH <= value <= _MAX_LENGTH:
            value = 0
        self._set_register(_LENGTH_OFFSET, value)

    @property
    def unit_id(self):
        return self._buffer[_UNIT_ID_OFFSET]

    @unit_id.setter
    def unit_id(self, value):
        self._buffer[_UNIT_ID_OFFSET] = value & 0xFF

    @property
    def function_code(self):
        return self._buffer[_PDU_OFFSET]

    @function_code.setter
    def function_code(self, value):
        self._buffer[_PDU_OFFSET] = value & 0xFF

    # Lengths of the different framings, all derived from ``length``.

    @property
    def rtu_len(self):
        length = self.length
        return length + 2 if length else 0

    @rtu_len.setter
    def rtu_len(self, value):
        self.length = value - 2

    @property
    def tcp_len(self):
        length = self.length
        return length + 6 if length else 0

    @tcp_len.setter
    def tcp_len(self, value):
        self.length = value - 6

    @property
    def pdu_len(self):
        length = self.length
        return length - 1 if length else 0

    @pdu_len.setter
    def pdu_len(self, value):
        self.length = value + 1

    @property
    def data_len(self):
        length = self.length
        return length - 2 if length else 0

    @data_len.setter
    def data_len(self, value):
        self.length = value + 2

    # Data registers.

    def get_data_register(self, index):
        """Return the big-endian 16-bit value at data byte *index*."""
        return self._get_register(_DATA_OFFSET + index)

    def set_data_register(self, index, value):
        """Store *value* big-endian at data byte *index*."""
        self._set_register(_DATA_OFFSET + index, value)

    # RTU framing.

    def rtu_frame(self):
        """Return the RTU frame, CRC included, as bytes."""
        return bytes(self._buffer[_RTU_OFFSET:_RTU_OFFSET + self.rtu_len])

    def update_crc(self):
        """Write the CRC after the current RTU frame body."""
        length = self.length
        crc = crc16(self._buffer[_RTU_OFFSET:_RTU_OFFSET + length])
        self._buffer[_RTU_OFFSET + length] = crc & 0xFF
        self._buffer[_RTU_OFFSET + length + 1] = crc >> 8

    def crc_good(self):
        """Return whether the stored CRC matches the RTU frame body."""
        length = self.length
        start = _RTU_OFFSET + length
        stored = self._buffer[start] | (self._buffer[start + 1] << 8)
        return stored == crc16(self._buffer[_RTU_OFFSET:start])

    def prepare_exception_response(self, exception_code):
        """Turn this unit into an exception response with *exception_code*."""
        self._buffer[_PDU_OFFSET] |= 0x80
        self._buffer[_PDU_OFFSET + 1] = exception_code & 0xFF
        self.pdu_len = 2