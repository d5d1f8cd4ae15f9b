"""s3_multipart パッケージ"""
from typing import Tuple
from .models.config import Config
from .utils.logger import LoggerManager
from .core.object_store import ObjectStore
from .core.task_runner import TaskRunner

__version__ = "0.1.0"


class S3Multipart:
    """設定ファイルのアップロードタスクを実行するメインクラス"""

    def __init__(self, config_path: str = "config.json"):
        self.config = Config.from_file(config_path)

        self.logger = LoggerManager.setup(self.config.logging)
        self.logger.info("s3_multipart initialized")

        self.store = ObjectStore.from_config(self.config)
        self.task_runner = TaskRunner(self.config, self.store)

    def run(self) -> Tuple[int, int]:
        """アップロードタスクを実行 (終了時にワーカープールを解放)"""
        self.logger.info("Starting upload process...")
        with self.store:
            return self.task_runner.run_all_tasks()


__all__ = ['S3Multipart', 'Config', '__version__']
