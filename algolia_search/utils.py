import time
from loguru import logger


__all__ = ["timer"]


class timer:
    def __init__(self, message: str, log_start=False, level="INFO"):
        self.message = message
        self.log_start = log_start
        self.level = level

    def __enter__(self):
        # Record the start time
        if self.log_start:
            logger.log(self.level, f"{self.message} - started")
        self.start_time = time.perf_counter()

    def __exit__(self, exc_type, exc_value, traceback):
        # Calculate the elapsed time
        elapsed_time = time.perf_counter() - self.start_time
        status = "failed" if exc_type is not None else "completed"
        logger.log(self.level, f"{self.message} - {status} ({elapsed_time:.4f} seconds)")
