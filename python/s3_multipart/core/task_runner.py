"""アップロードタスクの実行"""
import os
from typing import Optional, Tuple

from ..errors import S3MultipartError
from ..models.config import UploadTask, Config
from ..utils.logger import LoggerManager
from ..utils.file_utils import FileChunker, FileInfo
from .bucket_lifecycle import BucketLifecycle
from .object_store import ObjectStore
from .orchestrator import MultipartOrchestrator
from .verifier import CompletionVerifier


class TaskRunner:
    """設定ファイルのアップロードタスクを順に実行

    part_size 以下のファイルは単一PUT、それより大きいファイルはマルチパートで送る。
    """

    def __init__(self, config: Config, store: ObjectStore):
        self.config = config
        self.store = store
        self.logger = LoggerManager.get_logger("tasks")

        self.lifecycle = BucketLifecycle(store, config.options, region=config.aws.region)
        self.orchestrator = MultipartOrchestrator(store, config.options, self.lifecycle)
        self.verifier = CompletionVerifier()
        self.chunker = FileChunker(config.options.part_size)

    def run_all_tasks(self) -> Tuple[int, int]:
        """全てのタスクを実行"""
        total_tasks = len(self.config.upload_tasks)
        successful_tasks = 0
        failed_tasks = 0

        self.logger.info(f"Starting upload tasks: {total_tasks} tasks to process")

        for i, task in enumerate(self.config.upload_tasks, 1):
            if not task.enabled:
                self.logger.info(f"Skipping disabled task: {task.name}")
                continue

            self.logger.info(f"Task {i}/{total_tasks}: Starting '{task.name}'")

            try:
                success = self.run_task(task)
            except (S3MultipartError, OSError, ValueError) as e:
                success = False
                self.logger.error(f"Task {i}/{total_tasks}: '{task.name}' failed with error: {e}")

            if success:
                successful_tasks += 1
                self.logger.info(f"Task {i}/{total_tasks}: '{task.name}' completed successfully")
            else:
                failed_tasks += 1
                self.logger.error(f"Task {i}/{total_tasks}: '{task.name}' failed")

        self.logger.info(
            f"Upload tasks completed: {successful_tasks} successful, {failed_tasks} failed"
        )
        return successful_tasks, failed_tasks

    def run_task(self, task: UploadTask) -> bool:
        """単一タスクを実行"""
        if not os.path.isfile(task.source):
            self.logger.error(f"Source is not a file: {task.source}")
            return False

        file_info = FileInfo.from_path(task.source)
        key = task.object_key
        total_parts = self.chunker.count_parts(file_info.size)

        if self.config.options.dry_run:
            self.logger.info(
                f"[DRY RUN]: Would upload {file_info.path} to {task.bucket}/{key} "
                f"in {total_parts} part(s)"
            )
            return True

        if task.create_bucket and not self.lifecycle.ensure_present(task.bucket):
            self.logger.error(f"Bucket {task.bucket} is not available")
            return False

        if total_parts == 1:
            return self._put_single(file_info, task.bucket, key, task.content_type)

        parts = self.chunker.split(file_info)
        result = self.orchestrator.upload(task.bucket, key, parts, task.content_type)
        self.logger.info(
            f"Uploaded {file_info.path} to {task.bucket}/{key} "
            f"({len(parts)} parts, etag {result.etag})"
        )
        return True

    def _put_single(self, file_info: FileInfo, bucket: str, key: str,
                    content_type: Optional[str]) -> bool:
        with open(file_info.path, "rb") as file:
            body = file.read()

        outcome = self.store.put_object(bucket, key, body, content_type)
        if not outcome.is_success:
            self.logger.error(f"Error uploading {file_info.path}: {outcome.error}")
            return False

        self.verifier.verify_put(body, outcome.result)
        self.logger.info(f"Successfully uploaded {file_info.path} to {bucket}/{key}")
        return True
