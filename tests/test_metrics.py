"""Tests for hydrophone/metrics.py — table assembly and export."""

import pandas as pd
import pytest

from hydrophone.focal_regions import FocalRegion
from hydrophone.metrics import (
    METRICS_COLUMNS,
    assemble_metrics,
    metrics_to_frame,
    print_metrics,
    print_region_report,
    write_axial_profiles_csv,
    write_metrics_csv,
)


def _region(level, index, volume=1.0):
    return FocalRegion(level=level, index=index, volume_mm3=volume,
                       dimensions_mm=(1.0, 2.0, 3.0),
                       centroid_mm=(0.5, -0.5, 40.0))


class TestAssembleMetrics:
    def test_order_3db_then_6db(self):
        r3 = [_region("-3dB", 1), _region("-3dB", 2)]
        r6 = [_region("-6dB", 1)]
        table = assemble_metrics(r3, r6)
        assert [(r.level, r.index) for r in table] == [
            ("-3dB", 1), ("-3dB", 2), ("-6dB", 1)]

    def test_values_untouched(self):
        r3 = [_region("-3dB", 1, volume=12.5)]
        table = assemble_metrics(r3, [])
        assert table[0] is r3[0]

    def test_read_only(self):
        table = assemble_metrics([_region("-3dB", 1)], [])
        assert isinstance(table, tuple)

    def test_empty(self):
        assert assemble_metrics([], []) == ()


class TestMetricsToFrame:
    def test_columns_and_values(self):
        df = metrics_to_frame(assemble_metrics([_region("-3dB", 1, 4.0)],
                                               [_region("-6dB", 1, 9.0)]))
        assert list(df.columns) == METRICS_COLUMNS
        assert df["dB_Level"].tolist() == ["-3dB", "-6dB"]
        assert df["VolumeNumber"].tolist() == [1, 1]
        assert df["Volume_mm3"].tolist() == [4.0, 9.0]
        assert df["Dimensions_mm_z"].tolist() == [3.0, 3.0]
        assert df["Centroid_mm_y"].tolist() == [-0.5, -0.5]

    def test_empty_table_keeps_columns(self):
        df = metrics_to_frame(())
        assert list(df.columns) == METRICS_COLUMNS
        assert len(df) == 0


class TestWriters:
    def test_write_metrics_csv(self, tmp_path):
        table = assemble_metrics([_region("-3dB", 1)], [_region("-6dB", 1)])
        path = write_metrics_csv(table, tmp_path / "out", "CTX250-014")
        assert path.name == "focal_metrics_CTX250-014.csv"
        df = pd.read_csv(path)
        assert list(df.columns) == METRICS_COLUMNS
        assert len(df) == 2

    def test_write_axial_profiles_csv(self, tmp_path):
        path = write_axial_profiles_csv([0.0, 0.5, 1.0], [float("nan"), 2.0, 3.0],
                                        [0.0, 4.0, 5.0], tmp_path, "T")
        df = pd.read_csv(path)
        assert list(df.columns) == ["z_mm", "axial_max", "axial_sum"]
        assert pd.isna(df["axial_max"][0])
        assert df["axial_sum"].tolist() == [0.0, 4.0, 5.0]


class TestConsoleReport:
    def test_region_report_lines(self, capsys):
        print_region_report([_region("-3dB", 1, 2.0)])
        out = capsys.readouterr().out
        assert "-3dB: Focal volume, volume 1 (mm^3) = 2.00" in out
        assert "x = 1.0, y = 2.0, z = 3.0" in out
        assert "x = 0.5, y = -0.5, z = 40.0" in out

    @pytest.mark.parametrize("table", [(), (_region("-6dB", 1),)])
    def test_print_metrics(self, capsys, table):
        print_metrics(table)
        assert "Focal Metrics" in capsys.readouterr().out
