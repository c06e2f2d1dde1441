"""Tests for payload decoding / encoding and serial line parsing."""

import pytest

from bleradar.codec import (PayloadError, SampleAssembler, decode_running,
                            decode_uint, encode_running, encode_threshold,
                            parse_serial_line)
from bleradar.scan_buffer import Sample


class TestDecodeUint:

    def test_single_byte(self):
        assert decode_uint(b"\x2a") == 42

    def test_unsigned(self):
        assert decode_uint(b"\xff") == 255

    def test_big_endian_multi_byte(self):
        assert decode_uint(b"\x01\x02") == 258

    def test_bytearray(self):
        assert decode_uint(bytearray([0, 180])) == 180

    def test_empty(self):
        with pytest.raises(PayloadError):
            decode_uint(b"")

    def test_payload_error_is_value_error(self):
        assert issubclass(PayloadError, ValueError)


class TestRunning:

    def test_decode(self):
        assert decode_running(b"\x01") is True
        assert decode_running(b"\x00") is False
        assert decode_running(b"\x07\x00") is True

    def test_decode_empty(self):
        with pytest.raises(PayloadError):
            decode_running(b"")

    def test_encode(self):
        assert encode_running(True) == b"\x01"
        assert encode_running(False) == b"\x00"


class TestThreshold:

    def test_default(self):
        assert encode_threshold(15) == b"\x0f"

    def test_limits(self):
        assert encode_threshold(0) == b"\x00"
        assert encode_threshold(255) == b"\xff"

    @pytest.mark.parametrize("bad", [-1, 256, 1000])
    def test_out_of_range(self, bad):
        with pytest.raises(PayloadError, match="one byte"):
            encode_threshold(bad)


class TestSerialLine:

    def test_plain(self):
        assert parse_serial_line("Angle: 42, Distance: 17 cm") == Sample(42, 17)

    def test_crlf_and_spacing(self):
        assert parse_serial_line("  Angle:7 ,Distance:  3 cm\r") == Sample(7, 3)

    def test_banner(self):
        assert parse_serial_line("Ultrasonic Sensor and Servo Test") is None

    def test_empty(self):
        assert parse_serial_line("") is None

    def test_truncated(self):
        assert parse_serial_line("Angle: 42, Distan") is None

    def test_negative_values_parse(self):
        assert parse_serial_line("Angle: -5, Distance: -1 cm") == Sample(-5, -1)


class TestSampleAssembler:

    def test_starts_at_zero(self):
        asm = SampleAssembler()
        assert asm.on_distance(12) == Sample(0, 12)

    def test_each_notification_yields_latest_pair(self):
        asm = SampleAssembler()
        assert asm.on_angle(10) == Sample(10, 0)
        assert asm.on_distance(25) == Sample(10, 25)
        assert asm.on_angle(11) == Sample(11, 25)
        assert asm.on_angle(12) == Sample(12, 25)
        assert asm.on_distance(4) == Sample(12, 4)
