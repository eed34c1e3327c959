import logging


class DetectorNameFilter(logging.Filter):
    def __init__(self, detector_name: str):
        super().__init__()
        self.detector_name = detector_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.detector = self.detector_name
        return True


def setup_logger(detector_name: str, level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(f"aruco_engine.{detector_name}")
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter(
            "%(asctime)s %(levelname)s [%(detector)s] %(message)s"
        )
        handler.setFormatter(fmt)
        handler.addFilter(DetectorNameFilter(detector_name))
        logger.addHandler(handler)

    return logger


def add_file_handler(logger: logging.Logger, detector_name: str, log_path: str) -> None:
    handler = logging.FileHandler(log_path)
    fmt = logging.Formatter("%(asctime)s %(levelname)s [%(detector)s] %(message)s")
    handler.setFormatter(fmt)
    handler.addFilter(DetectorNameFilter(detector_name))
    logger.addHandler(handler)
