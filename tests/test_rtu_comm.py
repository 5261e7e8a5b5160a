import pytest

from relaymodbus.adu import ModbusADU
from relaymodbus.rtu_comm import (
    CrcError,
    FrameError,
    ModbusCommError,
    ModbusRTUComm,
    ResponseTimeoutError,
    SerialConfig,
)


class FakeSerial:
    def __init__(self, incoming=b"", echo=False, corrupt=False):
        self.rx = bytearray(incoming)
        self.tx = bytearray()
        self.echo = echo
        self.corrupt = corrupt

    @property
    def in_waiting(self):
        return len(self.rx)

    def read(self, size=1):
        chunk = bytes(self.rx[:size])
        del self.rx[:size]
        return chunk

    def write(self, data):
        self.tx += data
        if self.echo:
            self.rx += bytes(b ^ 0x01 for b in data) if self.corrupt else data
        return len(data)

    def flush(self):
        pass


def build_adu():
    adu = ModbusADU()
    adu.unit_id = 1
    adu.function_code = 3
    adu.set_data_register(0, 0x0010)
    adu.set_data_register(2, 0x0002)
    adu.data_len = 4
    adu.update_crc()
    return adu


def started(serial, direction_control=None):
    comm = ModbusRTUComm(serial, direction_control)
    comm.begin(115200)
    return comm


@pytest.mark.parametrize(
    "config, expected_period",
    [
        (SerialConfig.SERIAL_8N1, 10e-6),
        (SerialConfig.SERIAL_8E1, 11e-6),
        (SerialConfig.SERIAL_8N2, 11e-6),
        (SerialConfig.SERIAL_8O2, 12e-6),
    ],
)
def test_bits_per_char_sets_byte_period(config, expected_period):
    comm = ModbusRTUComm(FakeSerial())
    comm.begin(1_000_000, config)
    assert comm.byte_period == pytest.approx(expected_period)


def test_timing_invariants():
    slow = ModbusRTUComm(FakeSerial())
    slow.begin(9600, SerialConfig.SERIAL_8N1)
    parity = ModbusRTUComm(FakeSerial())
    parity.begin(9600, "8E2")
    assert slow.frame_timeout > slow.char_timeout > slow.byte_period
    assert parity.char_timeout > slow.char_timeout
    assert parity.post_delay > slow.post_delay


def test_fast_baud_uses_fixed_gaps():
    comm = ModbusRTUComm(FakeSerial())
    comm.begin(115200)
    assert comm.frame_timeout - comm.char_timeout == pytest.approx(0.001)


def test_invalid_baud():
    with pytest.raises(ValueError):
        ModbusRTUComm(FakeSerial()).begin(0)


def test_begin_drains_input():
    serial = FakeSerial(b"junk")
    started(serial)
    assert serial.in_waiting == 0


def test_use_before_begin():
    with pytest.raises(RuntimeError):
        ModbusRTUComm(FakeSerial()).read_adu()


def test_read_round_trip():
    frame = build_adu().rtu_frame()
    comm = started(FakeSerial())
    comm._serial.rx += frame
    adu = comm.read_adu()
    assert adu.unit_id == 1
    assert adu.function_code == 3
    assert adu.get_data_register(0) == 0x0010
    assert adu.get_data_register(2) == 0x0002
    assert adu.rtu_frame() == frame


def test_read_timeout_on_silence():
    comm = started(FakeSerial())
    with pytest.raises(ResponseTimeoutError):
        comm.read_adu()


def test_read_crc_error():
    frame = bytearray(build_adu().rtu_frame())
    frame[-1] ^= 0xFF
    serial = FakeSerial()
    comm = started(serial)
    serial.rx += frame
    with pytest.raises(CrcError):
        comm.read_adu()


def test_read_frame_error_when_data_keeps_coming():
    serial = FakeSerial()
    comm = started(serial)
    serial.rx += bytes(300)
    with pytest.raises(FrameError):
        comm.read_adu()


def test_comm_errors_share_base():
    serial = FakeSerial()
    comm = started(serial)
    with pytest.raises(ModbusCommError):
        comm.read_adu()


def test_write_with_echo_verifies():
    serial = FakeSerial(echo=True)
    states = []
    comm = started(serial, states.append)
    adu = build_adu()
    assert comm.write_adu(adu) is True
    assert bytes(serial.tx) == adu.rtu_frame()
    assert states == [False, True, False]


def test_write_without_echo_fails_verification():
    serial = FakeSerial()
    comm = started(serial)
    adu = build_adu()
    assert comm.write_adu(adu) is False
    assert bytes(serial.tx) == adu.rtu_frame()


def test_write_with_corrupt_echo_fails_verification():
    comm = started(FakeSerial(echo=True, corrupt=True))
    assert comm.write_adu(build_adu()) is False


def test_write_updates_crc():
    serial = FakeSerial()
    comm = started(serial)
    adu = build_adu()
    adu.set_data_register(2, 0x0005)
    comm.write_adu(adu)
    assert adu.crc_good()


def test_write_empty_adu_rejected():
    comm = started(FakeSerial())
    with pytest.raises(ValueError):
        comm.write_adu(ModbusADU())