"""Modbus RTU server answering requests from a serial line."""

import time

from relaymodbus.rtu_comm import ModbusCommError, ModbusRTUComm, SerialConfig
from relaymodbus.slave_logic import ModbusSlaveLogic

_MIN_UNIT_ID = 1
_MAX_UNIT_ID = 247


class ModbusRTUSlave(ModbusSlaveLogic):
    """Serves the configured tables to Modbus RTU clients.

    ``response_delay`` is the time in seconds to wait before replying.
    """

    def __init__(self, serial, direction_control=None):
        super().__init__()
        self._comm = ModbusRTUComm(serial, direction_control)
        self.unit_id = 0
        self.response_delay = 0.0

    def begin(self, unit_id, baud, config=SerialConfig.SERIAL_8N1):
        """Take *unit_id* if it is a valid id and set up the line timing."""
        if _MIN_UNIT_ID <= unit_id <= _MAX_UNIT_ID:
            self.unit_id = unit_id
        self._comm.begin(baud, config)

    def poll(self):
        """Handle one pending request; return whether one was handled."""
        try:
            adu = self._comm.read_adu()
        except ModbusCommError:
            return False
        request_unit = adu.unit_id
        if request_unit not in (self.unit_id, 0):
            return False
        self.process_pdu(adu)
        if request_unit != 0:
            if self.response_delay > 0:
                time.sleep(self.response_delay)
            self._comm.write_adu(adu)
        return True