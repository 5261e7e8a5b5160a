import pytest

from relaymodbus.board import RelayBoard


class Hardware:
    def __init__(self, raw_inputs=0xFF):
        self.raw_inputs = raw_inputs
        self.frames = []
        self.reads = 0

    def read_inputs(self):
        self.reads += 1
        return self.raw_inputs

    def shift_out(self, frame):
        self.frames.append(tuple(frame))


@pytest.fixture
def hardware():
    return Hardware()


@pytest.fixture
def board(hardware):
    return RelayBoard(hardware.read_inputs, hardware.shift_out)


def test_display_starts_blank(board, hardware):
    board.display_one_digit()
    assert board.relays == 0
    assert hardware.frames == [(board.relays, 0xFE, 0x00)]


def test_display_cycles_through_four_digits(board, hardware):
    board.set_display(1234)
    for _ in range(5):
        board.display_one_digit()
    assert board.read_display() == 1234
    assert hardware.frames == [
        (0, 0xFE, 0x06),
        (0, 0xFD, 0x5B),
        (0, 0xFB, 0x4F),
        (0, 0xF7, 0x66),
        (0, 0xFE, 0x06),
    ]


def test_display_shows_eight_and_zero(board, hardware):
    board.set_display(8080)
    for _ in range(4):
        board.display_one_digit()
    assert board.read_display() == 8080
    assert [frame[2] for frame in hardware.frames] == [0x7F, 0x3F, 0x7F, 0x3F]


def test_read_display_round_trip(board):
    board.set_display(907)
    assert board.read_display() == 907


@pytest.mark.parametrize("value", [10000, -1])
def test_out_of_range_display_value_is_ignored(board, value):
    board.set_display(42)
    board.set_display(value)
    assert board.read_display() == 42


def test_off_display_blanks_all_digits(board, hardware):
    board.set_display(5678)
    board.off_display()
    for _ in range(4):
        board.display_one_digit()
    # Every digit holds the blank glyph index 28.
    assert board.read_display() == 31108
    assert [frame[2] for frame in hardware.frames] == [0x00] * 4


def test_relay_set_and_clear(board):
    board.relay_set(0)
    board.relay_set(7)
    assert board.relay_read(0) and board.relay_read(7)
    board.relay_clear(0)
    assert not board.relay_read(0)
    assert board.relays == 0x80


def test_out_of_range_relay_is_ignored(board):
    board.relay_set(8)
    board.relay_set(-1)
    assert board.relays == 0


def test_relay_clear_all(board):
    for port in range(8):
        board.relay_set(port)
    board.relay_clear_all()
    assert board.relays == 0


def test_relay_byte_is_shifted_first(board, hardware):
    board.relay_set(1)
    board.display_one_digit()
    assert board.relays == 0x02
    assert hardware.frames[0][0] == 0x02


def test_inputs_are_inverted(board, hardware):
    hardware.raw_inputs = 0xFE
    assert board.sample_inputs() == 0x01
    assert board.read_input(0) is True
    assert [board.read_input(pin) for pin in range(1, 8)] == [False] * 7


def test_input_out_of_range_reads_false(board, hardware):
    hardware.raw_inputs = 0x00
    board.sample_inputs()
    assert board.read_input(8) is False


def test_inputs_start_inactive(board):
    assert [board.read_input(pin) for pin in range(8)] == [False] * 8


def test_tick_samples_inputs_every_201_ticks(board, hardware):
    hardware.raw_inputs = 0xFE
    for _ in range(201):
        board.tick()
    assert board.read_input(0) is False
    assert hardware.reads == 0
    board.tick()
    assert board.read_input(0) is True
    assert hardware.reads == 1
    hardware.raw_inputs = 0xFF
    for _ in range(200):
        board.tick()
    assert board.read_input(0) is True
    assert hardware.reads == 1
    board.tick()
    assert board.read_input(0) is False
    assert hardware.reads == 2
    assert len(hardware.frames) == 403


def test_coils_update(board):
    board.coils_update([True, False, True, False, False, False, False, True])
    assert board.relays == 0x85


def test_discrete_inputs_update_fills_in_place(board, hardware):
    hardware.raw_inputs = 0xF5
    board.sample_inputs()
    inputs = [True] * 8
    board.discrete_inputs_update(inputs)
    assert inputs == [True, False, True, False, False, False, False, False]


@pytest.mark.parametrize(
    "raw, expected_relays",
    [(0xFE, 0x01), (0xFD, 0x02), (0xFB, 0x00), (0xF7, 0x08), (0xFF, 0x00), (0xFC, 0x01)],
)
def test_input_selects_relay_loop(board, hardware, raw, expected_relays):
    hardware.raw_inputs = raw
    board.relay_set(5)
    board.sample_inputs()
    if board.read_input(0):
        board.relay_set(0)
    elif board.read_input(1):
        board.relay_set(1)
    elif board.read_input(2):
        board.relay_set(2)
    elif board.read_input(3):
        board.relay_set(3)
    else:
        board.relay_clear_all()
    board.relay_clear(2)
    relays = board.relays
    if expected_relays:
        relays &= ~0x20
    assert relays == expected_relays


def test_counter_on_display(board):
    for count in range(3):
        board.set_display(count)
        assert board.read_display() == count


def test_every_active_input_latches_its_relay(board, hardware):
    hardware.raw_inputs = 0x5A
    active = board.sample_inputs()
    for port in range(8):
        if board.read_input(port):
            board.relay_set(port)
    assert board.relays == active
    assert [port for port in range(8) if board.relay_read(port)] == [0, 2, 5, 7]