# relaymodbus

This package runs Modbus RTU over a serial line, either RS-485 or a plain UART. It is written in pure Python and uses pyserial.

## What is in it

- **`relaymodbus.adu`**: `ModbusADU` is a frame buffer. It has `rtu`, `tcp`, `pdu` and `data` views, header properties (`unit_id`, `function_code`, `length`, `rtu_len`, `data_len`, …) and CRC helpers. The module also has the Modbus `crc16` checksum and `div8_round_up`.
- **`relaymodbus.rtu_comm`**: `ModbusRTUComm` sends and receives RTU frames. It uses the character and frame timing that the baud rate and `SerialConfig` (`SERIAL_8N1`, `SERIAL_8E1`, …) call for. When a frame goes wrong, `read_adu()` raises one of these, all derived from `ModbusCommError`:
  - `ResponseTimeoutError`
  - `FrameError`
  - `CrcError`

  `write_adu()` returns whether the bytes echoed back on the line matched the frame that was sent.
- **`relaymodbus.master`**: `ModbusRTUMaster` is a client. It reads and writes coils, discrete inputs, holding registers and input registers on remote units.
- **`relaymodbus.slave_logic`**: `ModbusSlaveLogic` answers Modbus requests against the data tables you configure. It handles function codes 1–6, 15 and 16. Any other function code gets an `ExceptionCode.ILLEGAL_FUNCTION` response.
- **`relaymodbus.slave`**: `ModbusRTUSlave` puts that logic on a serial line.
- **`relaymodbus.board`**: `RelayBoard` models an 8-relay board with eight inputs and a four-digit seven-segment display. It is driven through two callables:
  - one that reads the raw input byte;
  - one that receives the three bytes shifted out on each refresh.
- **`relaymodbus.app`**: `RelayController` ties a slave to a board. This module also holds the `relaymodbus` command.

## Installing

```
pip install relaymodbus
```

## Reading and writing a remote unit

```python
import serial
from relaymodbus.master import ModbusRTUMaster, ExceptionResponseError

port = serial.Serial("/dev/ttyUSB0", 9600, timeout=0)
master = ModbusRTUMaster(port)
master.begin(9600)

coils = master.read_coils(1, 0, 8)            # list of 8 bools
registers = master.read_holding_registers(1, 0, 2)

master.write_single_coil(1, 3, True)
master.write_multiple_holding_registers(1, 0, [1234, 0])

try:
    master.read_input_registers(1, 100, 4)
except ExceptionResponseError as exc:
    print("the unit refused the request:", exc.exception_code)
```

`master.timeout` is the number of seconds to wait for the first byte of a reply. It defaults to 0.5.

Unit id 0 is a broadcast. Writes sent to it return without waiting for a reply. Reads need an id from 1 to 247.

| Problem | Error raised |
| --- | --- |
| Invalid unit id | `InvalidIdError` |
| Invalid quantity | `InvalidQuantityError` |
| Reply does not match the request | `UnexpectedResponseError` |
| Unit answers with a Modbus exception | `ExceptionResponseError` |
| Timeout, framing or CRC problem on the line | `ModbusCommError` subclasses from `relaymodbus.rtu_comm` |

The first four derive from `ModbusMasterError`.

For RS-485, pass a `direction_control` callable as the second argument. It is called with `True` before transmitting and with `False` afterwards.

## Serving data as a unit

```python
import serial
from relaymodbus.slave import ModbusRTUSlave

coils = [False] * 8
discrete_inputs = [False] * 8
holding_registers = [0] * 2
input_registers = [0] * 2

port = serial.Serial("/dev/ttyUSB0", 9600, timeout=0)
slave = ModbusRTUSlave(port)
slave.configure_coils(coils)
slave.configure_discrete_inputs(discrete_inputs)
slave.configure_holding_registers(holding_registers)
slave.configure_input_registers(input_registers)
slave.begin(1, 9600)

while True:
    slave.poll()   # True when a request for this unit (or a broadcast) was handled
```

The slave works on the lists you pass in. Writes from the master change them in place, so your code always sees the current values. To wait before each reply, set `slave.response_delay` to a number of seconds.

## The relay board controller

`RelayController(slave, board)` creates the Modbus tables and configures them on the slave:

- 8 coils
- 8 discrete inputs
- 2 holding registers
- 2 input registers

Each call to `step()` runs `update()` and then serves one pending request. `update()` does the following:

- copies the coils to the board's relays;
- copies the sampled board inputs to the discrete inputs;
- shows holding register 0 on the display.

The board's `tick()` is meant to be called every 3 ms. Each call refreshes one display digit, and about every 600 ms it samples the inputs.

To run the controller on a serial port:

```
relaymodbus /dev/ttyUSB0
```

The command accepts these options:

| Option | Default | Meaning |
| --- | --- | --- |
| `--baud` | 9600 | Baud rate |
| `--unit-id` | 1 | Modbus unit id |
| `--config` | `8N1` | Character framing: `8N1`, `8N2`, `8E1`, `8E2`, `8O1` or `8O2` |
| `--rts` | off | Drive the transceiver direction with RTS |
| `--inputs` | `0` | Byte of inputs to report as active, such as `0x05` |

The command polls every 200 ms. It prints the relay byte and the display value each time either one changes. Stop it with Ctrl-C.

To see the full option list:

```
relaymodbus --help
```

## Frames and checksums

```python
from relaymodbus.adu import ModbusADU, crc16

adu = ModbusADU()
adu.unit_id = 1
adu.function_code = 3
adu.set_data_register(0, 0)
adu.set_data_register(2, 2)
adu.data_len = 4
adu.update_crc()
frame = adu.rtu_frame()   # bytes ready to send, CRC included
assert adu.crc_good()
```

## What it does not do

The `relaymodbus` command does not talk to real relay, input or display hardware:

- the relay and segment bytes it shifts out are discarded;
- the input states come from the `--inputs` option.

The board state is only reported on standard output. To drive real hardware, build a `RelayBoard` with your own `read_inputs` and `shift_out` callables.

`ModbusADU` has TCP header fields (`transaction_id`, `protocol_id`), but there is no Modbus TCP transport. Only RTU over a serial line is supported.

## Running the tests

```
pip install relaymodbus[test]
pytest
```