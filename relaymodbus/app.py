"""Modbus RTU relay controller: serves the board's relays, inputs and display."""

import argparse
import sys
import threading
import time

import serial

from relaymodbus.board import RelayBoard
from relaymodbus.rtu_comm import SerialConfig
from relaymodbus.slave import ModbusRTUSlave

NUM_COILS = 8
NUM_DISCRETE_INPUTS = 8
NUM_HOLDING_REGISTERS = 2
NUM_INPUT_REGISTERS = 2

DEFAULT_BAUD = 9600
DEFAULT_UNIT_ID = 1
LOOP_DELAY = 0.2
TICK_INTERVAL = 0.003

_PARITY = {"N": serial.PARITY_NONE, "E": serial.PARITY_EVEN, "O": serial.PARITY_ODD}
_STOPBITS = {"1": serial.STOPBITS_ONE, "2": serial.STOPBITS_TWO}


class RelayController:
    """Connects the Modbus tables of *slave* to *board*.

    Coils drive the relays, discrete inputs mirror the board inputs and
    holding register 0 is shown on the display.
    """

    def __init__(self, slave, board):
        self.slave = slave
        self.board = board
        self.coils = [False] * NUM_COILS
        self.discrete_inputs = [False] * NUM_DISCRETE_INPUTS
        self.holding_registers = [0] * NUM_HOLDING_REGISTERS
        self.input_registers = [0] * NUM_INPUT_REGISTERS
        slave.configure_coils(self.coils)
        slave.configure_discrete_inputs(self.discrete_inputs)
        slave.configure_holding_registers(self.holding_registers)
        slave.configure_input_registers(self.input_registers)

    def update(self):
        """Copy coils to the relays, inputs to the table and register 0 to the display."""
        self.board.coils_update(self.coils)
        self.board.discrete_inputs_update(self.discrete_inputs)
        self.board.set_display(self.holding_registers[0])

    def step(self):
        """Run one loop pass; return whether a Modbus request was handled."""
        self.update()
        return self.slave.poll()


def _run_ticker(board, stop):
    while not stop.wait(TICK_INTERVAL):
        board.tick()


def _parse_args(argv):
    parser = argparse.ArgumentParser(
        prog="relaymodbus",
        description="Serve an eight-relay board as a Modbus RTU unit.",
    )
    parser.add_argument("port", help="serial port of the RS-485 line")
    parser.add_argument("--baud", type=int, default=DEFAULT_BAUD)
    parser.add_argument("--unit-id", type=int, default=DEFAULT_UNIT_ID)
    parser.add_argument(
        "--config",
        choices=[config.value for config in SerialConfig],
        default=SerialConfig.SERIAL_8N1.value,
    )
    parser.add_argument(
        "--rts", action="store_true", help="drive the transceiver direction with RTS"
    )
    parser.add_argument(
        "--inputs",
        type=lambda text: int(text, 0),
        default=0,
        help="byte of inputs to report as active",
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = _parse_args(argv)
    config = SerialConfig(args.config)
    port = serial.Serial(
        args.port,
        baudrate=args.baud,
        bytesize=serial.EIGHTBITS,
        parity=_PARITY[config.value[1]],
        stopbits=_STOPBITS[config.value[2]],
        timeout=0,
    )

    direction_control = None
    if args.rts:
        def direction_control(transmit):
            port.rts = transmit

    raw_inputs = ~args.inputs & 0xFF
    # The host has no shift registers; the board state is reported below.
    board = RelayBoard(lambda: raw_inputs, lambda frame: None)
    slave = ModbusRTUSlave(port, direction_control)
    controller = RelayController(slave, board)
    slave.begin(args.unit_id, args.baud, config)

    stop = threading.Event()
    ticker = threading.Thread(target=_run_ticker, args=(board, stop), daemon=True)
    ticker.start()
    last_state = None
    try:
        while True:
            time.sleep(LOOP_DELAY)
            controller.step()
            state = (board.relays, board.read_display())
            if state != last_state:
                print(f"relays={state[0]:08b} display={state[1]:04d}", flush=True)
                last_state = state
    except KeyboardInterrupt:
        return 0
    finally:
        stop.set()
        ticker.join()
        port.close()


if __name__ == "__main__":
    sys.exit(main())