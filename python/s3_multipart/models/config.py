"""設定管理用のデータクラス"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import json
import os
import re


MIN_PART_SIZE = 5 * 1024 * 1024  # S3のパート最小サイズ (最終パートを除く)


@dataclass
class LoggingConfig:
    """ロギング設定"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


@dataclass
class AssumeRoleConfig:
    """AssumeRole設定"""
    role_arn: str
    session_name: str
    external_id: Optional[str] = None
    duration_seconds: int = 3600

    def __post_init__(self):
        """AssumeRole設定のバリデーション"""
        arn_pattern = r'^arn:aws:iam::[0-9]{12}:role\/[a-zA-Z0-9+=,.@_-]+$'
        if not re.match(arn_pattern, self.role_arn):
            raise ValueError(
                f"Invalid role_arn format: {self.role_arn}. "
                "Expected format: arn:aws:iam::ACCOUNT_ID:role/ROLE_NAME"
            )

        if not self.session_name or not self.session_name.strip():
            raise ValueError("session_name cannot be empty")

        # 2-64文字の英数字、アンダースコア、ハイフン、ピリオドのみ
        if not re.match(r'^[a-zA-Z0-9_.-]{2,64}$', self.session_name):
            raise ValueError(
                f"Invalid session_name: {self.session_name}. "
                "Must be 2-64 characters long and contain only alphanumeric characters, "
                "underscores, hyphens, and periods"
            )

        if not (900 <= self.duration_seconds <= 43200):
            raise ValueError(
                f"Invalid duration_seconds: {self.duration_seconds}. "
                "Must be between 900 and 43200 seconds (15 minutes to 12 hours)"
            )


@dataclass
class AWSConfig:
    """接続先とトランスポート関連の設定

    タイムアウト・プロキシ・リトライ上限はそのまま botocore に渡す。
    """
    region: str = "us-east-1"
    profile: Optional[str] = None
    endpoint_url: Optional[str] = None  # MinIO等のS3互換ストア向け
    use_ssl: bool = True
    addressing_style: str = "auto"
    connect_timeout: float = 30.0
    read_timeout: float = 30.0
    max_attempts: int = 3
    proxy: Optional[str] = None
    assume_role: Optional[AssumeRoleConfig] = None

    def __post_init__(self):
        if self.assume_role:
            if isinstance(self.assume_role, dict):
                self.assume_role = AssumeRoleConfig(**self.assume_role)
            elif not isinstance(self.assume_role, AssumeRoleConfig):
                raise TypeError(
                    f"assume_role must be dict or AssumeRoleConfig, got {type(self.assume_role)}"
                )

        if self.addressing_style not in ("auto", "path", "virtual"):
            raise ValueError(f"Invalid addressing_style: {self.addressing_style}")

        if self.connect_timeout <= 0 or self.read_timeout <= 0:
            raise ValueError("Timeouts must be positive")

        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")


@dataclass
class MultipartOptions:
    """マルチパートアップロードのオプション"""
    part_size: int = 8 * 1024 * 1024  # 8MB
    max_concurrency: int = 4
    propagation_max_attempts: int = 10
    propagation_interval_seconds: float = 1.0
    verify_download: bool = True
    enable_progress: bool = False
    dry_run: bool = False
    abort_on_failure: bool = True

    def __post_init__(self):
        if self.part_size < MIN_PART_SIZE:
            raise ValueError(
                f"part_size must be at least {MIN_PART_SIZE} bytes, got {self.part_size}"
            )
        if self.max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {self.max_concurrency}")
        if self.propagation_max_attempts < 1:
            raise ValueError(
                f"propagation_max_attempts must be >= 1, got {self.propagation_max_attempts}"
            )
        if self.propagation_interval_seconds < 0:
            raise ValueError("propagation_interval_seconds cannot be negative")


@dataclass
class UploadTask:
    """個別のアップロードタスク"""
    # 必須フィールド
    name: str
    source: str
    bucket: str

    # オプションフィールド
    key: Optional[str] = None  # 未指定ならファイル名
    content_type: Optional[str] = None
    description: Optional[str] = None
    enabled: bool = True
    create_bucket: bool = False

    @property
    def object_key(self) -> str:
        return self.key or os.path.basename(self.source)


@dataclass
class Config:
    """メイン設定クラス"""
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    aws: AWSConfig = field(default_factory=AWSConfig)
    options: MultipartOptions = field(default_factory=MultipartOptions)
    upload_tasks: List[UploadTask] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """辞書から各セクションをパース"""
        return cls(
            logging=LoggingConfig(**data.get("logging", {})),
            aws=AWSConfig(**data.get("aws", {})),
            options=MultipartOptions(**data.get("options", {})),
            upload_tasks=[UploadTask(**task) for task in data.get("upload_tasks", [])],
        )

    @classmethod
    def from_file(cls, config_path: str) -> 'Config':
        """設定ファイルから読み込み"""
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file {config_path} not found.")

        try:
            with open(config_path, "r", encoding="utf-8") as file:
                data = json.load(file)
        except json.JSONDecodeError as e:
            raise ValueError(f"Error decoding JSON from {config_path}: {e}")

        try:
            return cls.from_dict(data)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid configuration in {config_path}: {e}")
        except Exception as e:
            raise RuntimeError(f"Error loading configuration: {e}")
