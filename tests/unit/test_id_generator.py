"""Tests for mk_common.id_generator and mk_common.datetime_utils."""

from datetime import UTC, datetime

import pytest

from src.mk_common.datetime_utils import utc_now
from src.mk_common.id_generator import SnowflakeIdGenerator, generate_invoice_number


class TestSnowflakeIdGenerator:
    def test_unique_ids(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        ids = {gen.next_id() for _ in range(1000)}
        assert len(ids) == 1000

    def test_monotonically_increasing(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        prev = int(gen.next_id())
        for _ in range(100):
            current = int(gen.next_id())
            assert current > prev
            prev = current

    def test_machine_id_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            SnowflakeIdGenerator(machine_id=1024)


class TestInvoiceNumber:
    def test_format(self) -> None:
        number = generate_invoice_number(datetime(2026, 3, 9, tzinfo=UTC))
        prefix, day, suffix = number.split("-")
        assert prefix == "INV"
        assert day == "20260309"
        assert suffix.isdigit()

    def test_unique(self) -> None:
        now = utc_now()
        assert generate_invoice_number(now) != generate_invoice_number(now)


class TestUtcNow:
    def test_is_utc(self) -> None:
        now = utc_now()
        assert now.tzinfo == UTC
