"""Server-side handling of Modbus requests against in-memory tables."""

from enum import IntEnum

from relaymodbus.adu import div8_round_up

_MAX_READ_BITS = 2000
_MAX_READ_REGISTERS = 125
_MAX_WRITE_COILS = 1968
_MAX_WRITE_REGISTERS = 123
_COIL_ON = 0xFF00


class ExceptionCode(IntEnum):
    """Modbus exception codes sent back to the client."""

    ILLEGAL_FUNCTION = 1
    ILLEGAL_DATA_ADDRESS = 2
    ILLEGAL_DATA_VALUE = 3


def _out_of_range(start, quantity, size):
    return quantity > size or start > size - quantity


class ModbusSlaveLogic:
    """Answers Modbus PDUs from coil, input and register lists.

    The configured lists are used in place: writes from clients change
    them, and changes made by the caller are seen by later reads.
    """

    def __init__(self):
        self._coils = None
        self._discrete_inputs = None
        self._holding_registers = None
        self._input_registers = None
        self._handlers = {
            1: self._read_coils,
            2: self._read_discrete_inputs,
            3: self._read_holding_registers,
            4: self._read_input_registers,
            5: self._write_single_coil,
            6: self._write_single_holding_register,
            15: self._write_multiple_coils,
            16: self._write_multiple_holding_registers,
        }

    def configure_coils(self, coils):
        self._coils = coils

    def configure_discrete_inputs(self, discrete_inputs):
        self._discrete_inputs = discrete_inputs

    def configure_holding_registers(self, holding_registers):
        self._holding_registers = holding_registers

    def configure_input_registers(self, input_registers):
        self._input_registers = input_registers

    def process_pdu(self, adu):
        """Turn the request in *adu* into its response, in place."""
        handler = self._handlers.get(adu.function_code)
        if handler is None:
            adu.prepare_exception_response(ExceptionCode.ILLEGAL_FUNCTION)
        else:
            handler(adu)

    def _read_coils(self, adu):
        self._read_bits(adu, self._coils)

    def _read_discrete_inputs(self, adu):
        self._read_bits(adu, self._discrete_inputs)

    def _read_holding_registers(self, adu):
        self._read_registers(adu, self._holding_registers)

    def _read_input_registers(self, adu):
        self._read_registers(adu, self._input_registers)

    def _write_single_coil(self, adu):
        address = adu.get_data_register(0)
        value = adu.get_data_register(2)
        if not self._coils:
            adu.prepare_exception_response(ExceptionCode.ILLEGAL_FUNCTION)
        elif value not in (0, _COIL_ON):
            adu.prepare_exception_response(ExceptionCode.ILLEGAL_DATA_VALUE)
        elif address >= len(self._coils):
            adu.prepare_exception_response(ExceptionCode.ILLEGAL_DATA_ADDRESS)
        else:
            self._coils[address] = value != 0

    def _write_single_holding_register(self, adu):
        address = adu.get_data_register(0)
        value = adu.get_data_register(2)
        if not self._holding_registers:
            adu.prepare_exception_response(ExceptionCode.ILLEGAL_FUNCTION)
        elif address >= len(self._holding_registers):
            adu.prepare_exception_response(ExceptionCode.ILLEGAL_DATA_ADDRESS)
        else:
            self._holding_registers[address] = value

    def _write_multiple_coils(self, adu):
        start = adu.get_data_register(0)
        quantity = adu.get_data_register(2)
        coils = self._coils
        if not coils:
            adu.prepare_exception_response(ExceptionCode.ILLEGAL_FUNCTION)
        elif (
            quantity == 0
            or quantity > _MAX_WRITE_COILS
            or adu.data[4] != div8_round_up(quantity)
        ):
            adu.prepare_exception_response(ExceptionCode.ILLEGAL_DATA_VALUE)
        elif _out_of_range(start, quantity, len(coils)):
            adu.prepare_exception_response(ExceptionCode.ILLEGAL_DATA_ADDRESS)
        else:
            byte_count = div8_round_up(quantity)
            packed = int.from_bytes(adu.data[5:5 + byte_count], "little")
            coils[start:start + quantity] = [
                bool((packed >> bit) & 1) for bit in range(quantity)
            ]
            adu.data_len = 4

    def _write_multiple_holding_registers(self, adu):
        start = adu.get_data_register(0)
        quantity = adu.get_data_register(2)
        registers = self._holding_registers
        if not registers:
            adu.prepare_exception_response(ExceptionCode.ILLEGAL_FUNCTION)
        elif (
            quantity == 0
            or quantity > _MAX_WRITE_REGISTERS
            or adu.data[4] != quantity * 2
        ):
            adu.prepare_exception_response(ExceptionCode.ILLEGAL_DATA_VALUE)
        elif _out_of_range(start, quantity, len(registers)):
            adu.prepare_exception_response(ExceptionCode.ILLEGAL_DATA_ADDRESS)
        else:
            registers[start:start + quantity] = [
                adu.get_data_register(5 + 2 * offset) for offset in range(quantity)
            ]
            adu.data_len = 4

    def _read_bits(self, adu, values):
        if adu.unit_id == 0:
            return
        start = adu.get_data_register(0)
        quantity = adu.get_data_register(2)
        if not values:
            adu.prepare_exception_response(ExceptionCode.ILLEGAL_FUNCTION)
        elif quantity == 0 or quantity > _MAX_READ_BITS:
            adu.prepare_exception_response(ExceptionCode.ILLEGAL_DATA_VALUE)
        elif _out_of_range(start, quantity, len(values)):
            adu.prepare_exception_response(ExceptionCode.ILLEGAL_DATA_ADDRESS)
        else:
            byte_count = div8_round_up(quantity)
            selected = values[start:start + quantity]
            packed = sum(1 << bit for bit, value in enumerate(selected) if value)
            adu.data[0] = byte_count
            adu.data[1:1 + byte_count] = packed.to_bytes(byte_count, "little")
            adu.data_len = 1 + byte_count

    def _read_registers(self, adu, values):
        if adu.unit_id == 0:
            return
        start = adu.get_data_register(0)
        quantity = adu.get_data_register(2)
        if not values:
            adu.prepare_exception_response(ExceptionCode.ILLEGAL_FUNCTION)
        elif quantity == 0 or quantity > _MAX_READ_REGISTERS:
            adu.prepare_exception_response(ExceptionCode.ILLEGAL_DATA_VALUE)
        elif _out_of_range(start, quantity, len(values)):
            adu.prepare_exception_response(ExceptionCode.ILLEGAL_DATA_ADDRESS)
        else:
            byte_count = quantity * 2
            adu.data[0] = byte_count
            for offset, value in enumerate(values[start:start + quantity]):
                adu.set_data_register(1 + 2 * offset, value)
            adu.data_len = 1 + byte_count