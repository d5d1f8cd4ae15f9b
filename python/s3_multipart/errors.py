"""例外クラス"""
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models.outcome import ErrorType, StoreError


class S3MultipartError(Exception):
    """パッケージ内の全例外の基底クラス"""


class TransportError(S3MultipartError):
    """ネットワーク障害・タイムアウト"""

    def __init__(self, message: str, error: Optional['StoreError'] = None):
        super().__init__(message)
        self.error = error


class ServiceError(S3MultipartError):
    """ストアが返したエラー (NoSuchBucket, NoSuchKey など)"""

    def __init__(self, message: str, error: Optional['StoreError'] = None):
        super().__init__(message)
        self.error = error

    @property
    def error_type(self) -> Optional['ErrorType']:
        return self.error.error_type if self.error else None


class IntegrityError(S3MultipartError):
    """ローカルで計算したチェックサムとストアのETagが一致しない"""


class OrchestrationError(S3MultipartError):
    """マルチパートアップロードの手順違反"""

    def __init__(self, message: str, error: Optional['StoreError'] = None):
        super().__init__(message)
        self.error = error


class InitiationError(OrchestrationError):
    """CreateMultipartUpload の失敗"""


class PartUploadError(OrchestrationError):
    """パートのアップロード失敗 (失敗したパート番号を保持)"""

    def __init__(self, part_number: int, message: str, error: Optional['StoreError'] = None):
        super().__init__(f"Part {part_number}: {message}", error)
        self.part_number = part_number


class FinalizationError(OrchestrationError):
    """CompleteMultipartUpload の失敗、またはマニフェスト不整合"""
