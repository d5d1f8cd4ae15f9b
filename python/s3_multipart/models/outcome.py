"""ストア呼び出しの結果型 (成功 or エラー)"""
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

from ..errors import S3MultipartError, ServiceError, TransportError


T = TypeVar("T")


class ErrorKind(Enum):
    """エラーの発生源"""
    TRANSPORT = "transport"
    SERVICE = "service"


class ErrorType(Enum):
    """型付きエラーコード"""
    NO_SUCH_BUCKET = "NoSuchBucket"
    NO_SUCH_KEY = "NoSuchKey"
    NO_SUCH_UPLOAD = "NoSuchUpload"
    ACCESS_DENIED = "AccessDenied"
    BUCKET_ALREADY_EXISTS = "BucketAlreadyExists"
    BUCKET_ALREADY_OWNED_BY_YOU = "BucketAlreadyOwnedByYou"
    BUCKET_NOT_EMPTY = "BucketNotEmpty"
    INVALID_BUCKET_NAME = "InvalidBucketName"
    INVALID_PART = "InvalidPart"
    INVALID_PART_ORDER = "InvalidPartOrder"
    ENTITY_TOO_SMALL = "EntityTooSmall"
    BAD_DIGEST = "BadDigest"
    INVALID_DIGEST = "InvalidDigest"
    SLOW_DOWN = "SlowDown"
    RESOURCE_NOT_FOUND = "ResourceNotFoundException"
    NETWORK_CONNECTION = "NetworkConnection"
    REQUEST_TIMEOUT = "RequestTimeout"
    RESPONSE_STREAM = "ResponseStream"
    UNKNOWN = "Unknown"

    @classmethod
    def from_code(cls, code: Optional[str]) -> 'ErrorType':
        """S3のエラーコード文字列から変換 (未知のコードは UNKNOWN)"""
        for member in cls:
            if member.value == code:
                return member
        return cls.UNKNOWN


@dataclass(frozen=True)
class StoreError:
    """失敗した呼び出しのエラー情報"""
    kind: ErrorKind
    error_type: ErrorType
    message: str
    code: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def is_not_found(self) -> bool:
        return self.error_type in (
            ErrorType.NO_SUCH_BUCKET,
            ErrorType.NO_SUCH_KEY,
            ErrorType.NO_SUCH_UPLOAD,
            ErrorType.RESOURCE_NOT_FOUND,
        )

    def to_exception(self) -> S3MultipartError:
        """対応する例外に変換"""
        text = f"{self.error_type.value}: {self.message}"
        if self.kind is ErrorKind.TRANSPORT:
            return TransportError(text, self)
        return ServiceError(text, self)

    def __str__(self) -> str:
        return f"{self.error_type.value} ({self.code}): {self.message}"


class Outcome(Generic[T]):
    """成功時は結果、失敗時は StoreError を保持する"""

    __slots__ = ("_result", "_error")

    def __init__(self, result: Optional[T] = None, error: Optional[StoreError] = None):
        if error is not None and result is not None:
            raise ValueError("Outcome cannot carry both a result and an error")
        self._result = result
        self._error = error

    @classmethod
    def success(cls, result: T) -> 'Outcome[T]':
        return cls(result=result)

    @classmethod
    def failure(cls, error: StoreError) -> 'Outcome[T]':
        return cls(error=error)

    @property
    def is_success(self) -> bool:
        return self._error is None

    @property
    def result(self) -> Optional[T]:
        return self._result

    @property
    def error(self) -> Optional[StoreError]:
        return self._error

    def get_result(self) -> T:
        """結果を取得 (失敗していれば例外を送出)"""
        if self._error is not None:
            raise self._error.to_exception()
        return self._result

    def __bool__(self) -> bool:
        return self.is_success

    def __repr__(self) -> str:
        if self.is_success:
            return f"Outcome.success({self._result!r})"
        return f"Outcome.failure({self._error!r})"
