import json
import logging
from unittest.mock import patch

import cv2
import numpy as np
import pytest

from aruco_engine import cli
from aruco_engine.services import calib as calib_mod
from aruco_engine.services.calib import build_camera_matrix, build_dist_coeffs

from conftest import FOCAL, PRINCIPAL, facing_rvec, render_marker


@pytest.fixture(autouse=True)
def cli_logger():
    """Route CLI logging through a propagating logger that caplog can see."""
    logger = logging.getLogger("test.cli")

    def _setup(name, level=logging.INFO):
        logger.setLevel(level)
        return logger

    with patch("aruco_engine.factory.setup_logger", side_effect=_setup):
        yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def _write_marker_image(tmp_path):
    gray = render_marker(5, facing_rvec(), np.array([0.0, 0.0, 0.5]))
    path = tmp_path / "frame.png"
    cv2.imwrite(str(path), gray)
    return path


def test_cli_prints_detected_marker(tmp_path, capsys):
    image = _write_marker_image(tmp_path)
    rc = cli.main([
        str(image),
        "--dict", "4x4_50",
        "--marker-size", "0.1",
        "--focal", str(FOCAL[0]), str(FOCAL[1]),
        "--principal", str(PRINCIPAL[0]), str(PRINCIPAL[1]),
    ])
    assert rc == 0

    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 1
    marker_id, position, _rotation = lines[0].split()
    assert marker_id == "5"
    z = float(position.split("=")[1].split(",")[2])
    assert abs(z - 0.5) < 0.01


def test_cli_reads_config_file(tmp_path, capsys):
    image = _write_marker_image(tmp_path)
    config = tmp_path / "detector.json"
    config.write_text(json.dumps({
        "dictionary": "4x4_50",
        "marker_size": 0.2,
        "focal_length": list(FOCAL),
        "principal_point": list(PRINCIPAL),
    }))
    assert cli.main([str(image), "--config", str(config)]) == 0
    line = capsys.readouterr().out.strip()
    z = float(line.split()[1].split("=")[1].split(",")[2])
    assert abs(z - 1.0) < 0.02


def test_cli_missing_image_returns_error(tmp_path, caplog):
    with caplog.at_level(logging.INFO, logger="test.cli"):
        assert cli.main([str(tmp_path / "missing.png")]) == 2
    assert any("could not read image" in r.getMessage() for r in caplog.records)


def test_cli_log_file_receives_records(tmp_path):
    image = _write_marker_image(tmp_path)
    log_file = tmp_path / "detector.log"
    rc = cli.main([
        str(image),
        "--focal", str(FOCAL[0]), str(FOCAL[1]),
        "--principal", str(PRINCIPAL[0]), str(PRINCIPAL[1]),
        "--log-file", str(log_file),
    ])
    assert rc == 0
    text = log_file.read_text()
    assert "Completed marker detection: 1 ids found" in text
    assert "[aruco]" in text


def test_cli_reads_calibration_once(tmp_path, capsys):
    image = _write_marker_image(tmp_path)
    calib = str(tmp_path / "calib.yml")
    fs = cv2.FileStorage(calib, cv2.FILE_STORAGE_WRITE)
    fs.write("camera_matrix", build_camera_matrix(FOCAL, PRINCIPAL))
    fs.write("dist_coeffs", build_dist_coeffs([0.0, 0.0, 0.0], [0.0, 0.0]))
    fs.write("image_width", 640)
    fs.write("image_height", 480)
    fs.release()

    with patch.object(calib_mod, "load_calib", wraps=calib_mod.load_calib) as spy:
        rc = cli.main([str(image), "--calib", calib, "--marker-size", "0.1"])

    assert rc == 0
    assert spy.call_count == 1
    assert capsys.readouterr().out.startswith("5 ")


def test_cli_writes_dilated_mask(tmp_path):
    image = _write_marker_image(tmp_path)
    mask = np.zeros((8, 8), dtype=np.uint16)
    mask[4, 4] = 1000
    mask_path = tmp_path / "mask.png"
    cv2.imwrite(str(mask_path), mask)
    out_path = tmp_path / "dilated.png"

    rc = cli.main([str(image), "--dilate-mask", str(mask_path), "--out", str(out_path)])
    assert rc == 0
    out = cv2.imread(str(out_path), cv2.IMREAD_UNCHANGED)
    assert out.dtype == np.uint16
    assert np.count_nonzero(out) == 9
