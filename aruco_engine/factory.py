import logging

from .detector import ArucoMarkerDetector
from .logging_utils import add_file_handler, setup_logger
from .strategies.preprocess import BgraToGray
from .strategies.detect_aruco import ArucoDetect


class StrategyFactory:
    @staticmethod
    def from_config(config):
        # Preprocess
        pre = BgraToGray()

        # Detection and camera intrinsics (calibration file wins over inline values)
        det = ArucoDetect(config.dictionary)
        camera = config.camera_model()

        return pre, det, camera

    @staticmethod
    def build_detector(config, pre=None, det=None) -> ArucoMarkerDetector:
        level = getattr(logging, str(config.log_level).upper(), logging.INFO)
        logger = setup_logger(config.detector_name, level)
        if config.log_path:
            add_file_handler(logger, config.detector_name, config.log_path)

        pre = pre or BgraToGray()
        det = det or ArucoDetect(config.dictionary)
        return ArucoMarkerDetector(
            logger=logger,
            pre=pre,
            codecs={int(det.codec.kind): det.codec},
        )
