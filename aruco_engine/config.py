from __future__ import annotations

import json
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any, Optional

from .services.calib import CameraModel


@dataclass
class DetectorConfig:
    detector_name: str = "aruco"
    dictionary: int | str = "4x4_50"
    marker_size: float = 0.035
    focal_length: list[float] = field(default_factory=lambda: [1000.0, 1000.0])
    principal_point: list[float] = field(default_factory=lambda: [960.0, 540.0])
    radial_distortion: list[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    tangential_distortion: list[float] = field(default_factory=lambda: [0.0, 0.0])
    calibration_path: Optional[str] = None  # overrides the inline intrinsics
    log_level: str = "INFO"
    log_path: Optional[str] = None  # extra file handler when set

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def apply_overrides(self, **kwargs: Any) -> "DetectorConfig":
        for key, value in kwargs.items():
            if value is not None and hasattr(self, key):
                setattr(self, key, value)
        return self

    def camera_model(self) -> CameraModel:
        if self.calibration_path:
            return CameraModel.from_file(self.calibration_path)
        return CameraModel.from_parameters(
            self.focal_length,
            self.principal_point,
            self.radial_distortion,
            self.tangential_distortion,
        )


def _float_list(value: Any, count: int, key: str) -> list[float]:
    if not isinstance(value, (list, tuple)) or len(value) != count:
        raise ValueError(f"{key} must be a list of {count} numbers")
    return [float(v) for v in value]


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        import yaml  # type: ignore
    except Exception as exc:  # pragma: no cover - optional dependency
        raise RuntimeError(
            "YAML config requested but PyYAML is not installed. "
            "Install with: pip install pyyaml"
        ) from exc
    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError("YAML config root must be a mapping")
    return data


def load_config(path: str | Path) -> DetectorConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")

    if p.suffix.lower() in {".yaml", ".yml"}:
        raw = _load_yaml(p)
    else:
        with p.open("r", encoding="utf-8") as fp:
            raw = json.load(fp)

    if not isinstance(raw, dict):
        raise ValueError("Config root must be a JSON/YAML object")

    cfg = DetectorConfig()
    cfg.detector_name = str(raw.get("detector_name", cfg.detector_name))
    dictionary = raw.get("dictionary", cfg.dictionary)
    cfg.dictionary = dictionary if isinstance(dictionary, int) else str(dictionary)
    cfg.marker_size = float(raw.get("marker_size", cfg.marker_size))
    cfg.focal_length = _float_list(raw.get("focal_length", cfg.focal_length), 2, "focal_length")
    cfg.principal_point = _float_list(raw.get("principal_point", cfg.principal_point), 2, "principal_point")
    cfg.radial_distortion = _float_list(
        raw.get("radial_distortion", cfg.radial_distortion), 3, "radial_distortion"
    )
    cfg.tangential_distortion = _float_list(
        raw.get("tangential_distortion", cfg.tangential_distortion), 2, "tangential_distortion"
    )
    cfg.calibration_path = raw.get("calibration_path", cfg.calibration_path)
    if cfg.calibration_path is not None:
        cfg.calibration_path = str(cfg.calibration_path)
    cfg.log_level = str(raw.get("log_level", cfg.log_level)).upper()
    cfg.log_path = raw.get("log_path", cfg.log_path)
    if cfg.log_path is not None:
        cfg.log_path = str(cfg.log_path)
    return cfg
