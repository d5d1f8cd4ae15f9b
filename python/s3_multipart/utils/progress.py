"""マルチパートアップロードの進捗管理"""
import time
import threading
from typing import Dict, Optional

from .logger import LoggerManager


class ProgressTracker:
    """1つのオブジェクトについて完了したパートを追跡"""

    def __init__(self, total_size: int, total_parts: int, name: str):
        self.total_size = total_size
        self.total_parts = total_parts
        self.name = name
        self.uploaded_size = 0
        self.completed_parts = 0
        self.lock = threading.Lock()
        self.start_time = time.time()
        self.logger = LoggerManager.get_logger("progress")

    def part_done(self, part_number: int, size: int):
        """パート完了時に呼ぶ"""
        with self.lock:
            self.uploaded_size += size
            self.completed_parts += 1
            self._report(part_number)

    @property
    def percent(self) -> float:
        if self.total_size == 0:
            return 100.0
        return (self.uploaded_size / self.total_size) * 100

    def _report(self, part_number: int):
        elapsed_time = time.time() - self.start_time
        speed = self.uploaded_size / elapsed_time / 1024 / 1024 if elapsed_time > 0 else 0.0
        self.logger.info(
            f"{self.name}: part {part_number} done, "
            f"{self.completed_parts}/{self.total_parts} parts, {self.percent:.1f}% "
            f"- {speed:.2f} MB/s"
        )

    def complete(self):
        elapsed_time = time.time() - self.start_time
        speed = self.total_size / elapsed_time / 1024 / 1024 if elapsed_time > 0 else 0.0
        self.logger.info(f"{self.name}: Complete! - {speed:.2f} MB/s - {elapsed_time:.1f}s")


class ProgressManager:
    """複数のアップロードの進捗を管理"""

    def __init__(self):
        self.trackers: Dict[str, ProgressTracker] = {}
        self.lock = threading.Lock()

    def create_tracker(self, task_id: str, total_size: int, total_parts: int) -> ProgressTracker:
        with self.lock:
            tracker = ProgressTracker(total_size, total_parts, task_id)
            self.trackers[task_id] = tracker
            return tracker

    def get_tracker(self, task_id: str) -> Optional[ProgressTracker]:
        return self.trackers.get(task_id)

    def remove_tracker(self, task_id: str):
        with self.lock:
            self.trackers.pop(task_id, None)
