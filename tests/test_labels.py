import re

import pytest

from ec2_runner.labels import generate_label, to_base36

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]


class TestBase36:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(0, "0"), (35, "z"), (36, "10"), (1295, "zz"), (1296, "100")],
    )
    def test_encoding(self, value, expected):
        assert to_base36(value) == expected

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            to_base36(-1)


class TestGenerateLabel:
    def test_plain_label_shape(self):
        label = generate_label()
        assert re.fullmatch(r"[0-9a-z]{8}", label)

    def test_timestamp_part_is_last_four_base36_digits(self):
        ms = 1_700_000_000_000
        label = generate_label(now_ms=ms)
        assert label[:4] == to_base36(ms)[-4:]

    def test_unit_prefix(self):
        label = generate_label("linux-arm64")
        assert label.startswith("linux-arm64-")
        assert len(label) == len("linux-arm64-") + 8

    def test_labels_distinct_across_units_with_same_timestamp(self):
        units = [f"u{i}" for i in range(50)]
        labels = [generate_label(u, now_ms=1_700_000_000_000) for u in units]
        assert len(set(labels)) == len(units)
