"""
Tests for the gaze replay command line
"""

import argparse

import pytest
import yaml

from eyegaze.config import SessionConfig
from eyegaze.main import main, parse_aoi, read_gaze_csv, replay


QUIET_CONFIG = (
    "logging:\n"
    "  level: WARNING\n"
    "  log_directory: null\n"
    "  console_output: false\n"
)


def write_stream(path, rows, header="x,y,timestamp"):
    lines = [header] + [",".join(str(v) for v in row) for row in rows]
    path.write_text("\n".join(lines) + "\n")
    return path


def fixation_rows():
    rows = [(100, 100, t) for t in range(0, 160, 20)]
    rows.append((600, 100, 160))
    rows.append((600, 100, 180))
    return rows


class TestParseAoi:
    """Tests for --aoi parsing"""

    def test_valid(self):
        assert parse_aoi("menu, 0, 0, 300, 1080") == ("menu", 0.0, 0.0, 300.0, 1080.0)

    def test_wrong_arity(self):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_aoi("menu,0,0")

    def test_not_numbers(self):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_aoi("menu,a,b,c,d")


class TestReplay:
    """Tests for CSV reading and replay"""

    def test_read_gaze_csv(self, tmp_path):
        path = write_stream(tmp_path / "gaze.csv", [(1, 2, 0, 0.5)], header="x,y,timestamp,confidence")
        points = list(read_gaze_csv(path))
        assert len(points) == 1
        assert points[0].confidence == 0.5

    def test_missing_columns(self, tmp_path):
        path = write_stream(tmp_path / "gaze.csv", [(1, 2)], header="x,y")
        with pytest.raises(ValueError):
            list(read_gaze_csv(path))

    def test_replay_report(self, tmp_path):
        path = write_stream(tmp_path / "gaze.csv", fixation_rows())
        report = replay(read_gaze_csv(path), SessionConfig(), [("left", 0, 0, 200, 200)])

        assert report['samples'] == 10
        assert report['metrics']['fixation_count'] == 1
        assert report['metrics']['total_saccades'] == 1
        assert report['metrics']['distractor_saccades'] == 1
        assert report['visited_areas'] == {"left": 8}


class TestMain:
    """Tests for the command line entry point"""

    def test_main_prints_yaml(self, tmp_path, capsys):
        stream = write_stream(tmp_path / "gaze.csv", fixation_rows())
        config = tmp_path / "config.yaml"
        config.write_text(QUIET_CONFIG)

        code = main(["--input", str(stream), "--config", str(config), "--aoi", "left,0,0,200,200"])
        assert code == 0

        report = yaml.safe_load(capsys.readouterr().out)
        assert report['samples'] == 10
        assert report['metrics']['fixation_count'] == 1
        assert report['metrics']['gaze_duration'] == pytest.approx(180.0)

    def test_out_of_order_stream_fails(self, tmp_path):
        stream = write_stream(tmp_path / "gaze.csv", [(0, 0, 100), (0, 0, 50)])
        config = tmp_path / "config.yaml"
        config.write_text(QUIET_CONFIG)
        assert main(["--input", str(stream), "--config", str(config)]) == 1

    def test_missing_input_fails(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text(QUIET_CONFIG)
        assert main(["--input", str(tmp_path / "none.csv"), "--config", str(config)]) == 1
