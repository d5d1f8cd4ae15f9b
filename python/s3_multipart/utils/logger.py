"""ロギング設定ユーティリティ"""
import logging
import os
from typing import Optional, List
from ..models.config import LoggingConfig

ROOT_LOGGER_NAME = "s3_multipart"


class LoggerManager:
    """ロガーの設定と管理

    setup() 前でも get_logger() は未設定の子ロガーを返すので、
    ライブラリとして組み込んだ場合でも失敗しない。
    """

    _logger: Optional[logging.Logger] = None

    @classmethod
    def setup(cls, config: LoggingConfig) -> logging.Logger:
        """ロガーをセットアップ"""
        if cls._logger is not None:
            return cls._logger

        log_level = getattr(logging, config.level.upper(), logging.INFO)

        handlers: List[logging.Handler] = []
        formatter = logging.Formatter(config.format, datefmt="%Y-%m-%d %H:%M:%S")

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

        # ファイルハンドラー（設定されている場合）
        if config.file:
            log_dir = os.path.dirname(config.file)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)

            file_handler = logging.FileHandler(config.file, encoding="utf-8")
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)

        logger = logging.getLogger(ROOT_LOGGER_NAME)
        logger.setLevel(log_level)
        logger.handlers = handlers

        cls._logger = logger
        return logger

    @classmethod
    def get_logger(cls, name: Optional[str] = None) -> logging.Logger:
        """コンポーネント用のロガーを取得 (ルートロガーの子)"""
        if name is None:
            return cls._logger or logging.getLogger(ROOT_LOGGER_NAME)
        return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")

    @classmethod
    def reset(cls):
        """ハンドラーを閉じて未設定状態に戻す"""
        if cls._logger is not None:
            for handler in cls._logger.handlers:
                handler.close()
            cls._logger.handlers = []
        cls._logger = None
