"""Modbus RTU client: sends requests to a unit and checks its replies."""

from relaymodbus.adu import ModbusADU, div8_round_up
from relaymodbus.rtu_comm import ModbusRTUComm, SerialConfig

_MAX_UNIT_ID = 247
_MAX_READ_BITS = 2000
_MAX_READ_REGISTERS = 125
_MAX_WRITE_COILS = 1968
_MAX_WRITE_REGISTERS = 123
_COIL_ON = 0xFF00
_DEFAULT_TIMEOUT = 0.5

_READ_COILS = 1
_READ_DISCRETE_INPUTS = 2
_READ_HOLDING_REGISTERS = 3
_READ_INPUT_REGISTERS = 4
_WRITE_SINGLE_COIL = 5
_WRITE_SINGLE_REGISTER = 6
_WRITE_MULTIPLE_COILS = 15
_WRITE_MULTIPLE_REGISTERS = 16


class ModbusMasterError(Exception):
    """A request could not be made or its reply was not acceptable."""


class InvalidIdError(ModbusMasterError, ValueError):
    """The unit id is outside the range allowed for the request."""


class InvalidQuantityError(ModbusMasterError, ValueError):
    """The number of values is outside the range allowed for the request."""


class UnexpectedResponseError(ModbusMasterError):
    """The reply did not match the request."""


class ExceptionResponseError(ModbusMasterError):
    """The unit answered with a Modbus exception."""

    def __init__(self, function_code, exception_code):
        super().__init__(
            f"function {function_code} failed with exception code {exception_code}"
        )
        self.function_code = function_code
        self.exception_code = exception_code


class ModbusRTUMaster:
    """Issues Modbus requests over an RTU serial line.

    Errors from the line itself (timeout, framing, CRC) are raised as the
    ``ModbusCommError`` subclasses of ``relaymodbus.rtu_comm``.
    """

    def __init__(self, serial, direction_control=None):
        self._comm = ModbusRTUComm(serial, direction_control)
        self._comm.timeout = _DEFAULT_TIMEOUT

    @property
    def timeout(self):
        """Seconds to wait for the first byte of a reply."""
        return self._comm.timeout

    @timeout.setter
    def timeout(self, value):
        self._comm.timeout = value

    def begin(self, baud, config=SerialConfig.SERIAL_8N1):
        self._comm.begin(baud, config)

    def read_coils(self, unit_id, start_address, quantity):
        return self._read_bits(unit_id, _READ_COILS, start_address, quantity)

    def read_discrete_inputs(self, unit_id, start_address, quantity):
        return self._read_bits(unit_id, _READ_DISCRETE_INPUTS, start_address, quantity)

    def read_holding_registers(self, unit_id, start_address, quantity):
        return self._read_registers(
            unit_id, _READ_HOLDING_REGISTERS, start_address, quantity
        )

    def read_input_registers(self, unit_id, start_address, quantity):
        return self._read_registers(
            unit_id, _READ_INPUT_REGISTERS, start_address, quantity
        )

    def write_single_coil(self, unit_id, address, value):
        self._write_single(
            unit_id, _WRITE_SINGLE_COIL, address, _COIL_ON if value else 0
        )

    def write_single_holding_register(self, unit_id, address, value):
        self._write_single(unit_id, _WRITE_SINGLE_REGISTER, address, value)

    def write_multiple_coils(self, unit_id, start_address, values):
        values = list(values)
        _check_write_id(unit_id)
        quantity = len(values)
        if not 1 <= quantity <= _MAX_WRITE_COILS:
            raise InvalidQuantityError(f"cannot write {quantity} coils")
        byte_count = div8_round_up(quantity)
        packed = sum(1 << bit for bit, value in enumerate(values) if value)
        adu = _request(unit_id, _WRITE_MULTIPLE_COILS, start_address, quantity)
        adu.data[4] = byte_count
        adu.data[5:5 + byte_count] = packed.to_bytes(byte_count, "little")
        adu.data_len = 5 + byte_count
        reply = self._transact(adu, unit_id, _WRITE_MULTIPLE_COILS)
        if reply is not None:
            _check_write_echo(reply, start_address, quantity, "quantity")

    def write_multiple_holding_registers(self, unit_id, start_address, values):
        values = list(values)
        _check_write_id(unit_id)
        quantity = len(values)
        if not 1 <= quantity <= _MAX_WRITE_REGISTERS:
            raise InvalidQuantityError(f"cannot write {quantity} registers")
        byte_count = quantity * 2
        adu = _request(unit_id, _WRITE_MULTIPLE_REGISTERS, start_address, quantity)
        adu.data[4] = byte_count
        for offset, value in enumerate(values):
            adu.set_data_register(5 + 2 * offset, value)
        adu.data_len = 5 + byte_count
        reply = self._transact(adu, unit_id, _WRITE_MULTIPLE_REGISTERS)
        if reply is not None:
            _check_write_echo(reply, start_address, quantity, "quantity")

    def _read_bits(self, unit_id, function_code, start_address, quantity):
        _check_read_id(unit_id)
        if not 1 <= quantity <= _MAX_READ_BITS:
            raise InvalidQuantityError(f"cannot read {quantity} bits")
        adu = _request(unit_id, function_code, start_address, quantity)
        adu.data_len = 4
        reply = self._transact(adu, unit_id, function_code)
        byte_count = div8_round_up(quantity)
        _check_byte_count(reply, byte_count)
        packed = int.from_bytes(reply.data[1:1 + byte_count], "little")
        return [bool((packed >> bit) & 1) for bit in range(quantity)]

    def _read_registers(self, unit_id, function_code, start_address, quantity):
        _check_read_id(unit_id)
        if not 1 <= quantity <= _MAX_READ_REGISTERS:
            raise InvalidQuantityError(f"cannot read {quantity} registers")
        adu = _request(unit_id, function_code, start_address, quantity)
        adu.data_len = 4
        reply = self._transact(adu, unit_id, function_code)
        _check_byte_count(reply, quantity * 2)
        return [reply.get_data_register(1 + 2 * offset) for offset in range(quantity)]

    def _write_single(self, unit_id, function_code, address, value):
        _check_write_id(unit_id)
        adu = _request(unit_id, function_code, address, value)
        adu.data_len = 4
        reply = self._transact(adu, unit_id, function_code)
        if reply is not None:
            _check_write_echo(reply, address, value, "value")

    def _transact(self, adu, unit_id, function_code):
        """Send *adu*; return the checked reply, or None for a broadcast."""
        self._comm.write_adu(adu)
        if unit_id == 0:
            return None
        reply = self._comm.read_adu()
        if reply.unit_id != unit_id:
            raise UnexpectedResponseError(
                f"reply from unit {reply.unit_id}, expected {unit_id}"
            )
        if reply.function_code == function_code + 0x80:
            raise ExceptionResponseError(function_code, reply.data[0])
        if reply.function_code != function_code:
            raise UnexpectedResponseError(
                f"reply function code {reply.function_code}, expected {function_code}"
            )
        return reply


def _request(unit_id, function_code, first, second):
    adu = ModbusADU()
    adu.unit_id = unit_id
    adu.function_code = function_code
    adu.set_data_register(0, first)
    adu.set_data_register(2, second)
    return adu


def _check_read_id(unit_id):
    if not 1 <= unit_id <= _MAX_UNIT_ID:
        raise InvalidIdError(f"invalid unit id for a read: {unit_id}")


def _check_write_id(unit_id):
    if not 0 <= unit_id <= _MAX_UNIT_ID:
        raise InvalidIdError(f"invalid unit id for a write: {unit_id}")


def _check_byte_count(reply, byte_count):
    if reply.data_len != 1 + byte_count:
        raise UnexpectedResponseError(
            f"reply data length {reply.data_len}, expected {1 + byte_count}"
        )
    if reply.data[0] != byte_count:
        raise UnexpectedResponseError(
            f"reply byte count {reply.data[0]}, expected {byte_count}"
        )


def _check_write_echo(reply, address, second, what):
    if reply.data_len != 4:
        raise UnexpectedResponseError(f"reply data length {reply.data_len}, expected 4")
    if reply.get_data_register(0) != address:
        raise UnexpectedResponseError(
            f"reply address {reply.get_data_register(0)}, expected {address}"
        )
    if reply.get_data_register(2) != second & 0xFFFF:
        raise UnexpectedResponseError(
            f"reply {what} {reply.get_data_register(2)}, expected {second}"
        )