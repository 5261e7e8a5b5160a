"""Modbus RTU master and slave over a serial line, with a relay board controller."""

__version__ = "0.1.0"

__all__ = ["adu", "slave_logic", "rtu_comm", "master", "slave", "board", "app"]