"""オブジェクトストア操作 (boto3 S3 クライアントのラッパー)

全ての操作は例外を送出せず Outcome を返す。
非同期操作はストアが保持するスレッドプールに投入され Future を返す。
"""
import io
import shutil
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, BinaryIO, Callable, Dict, Optional, Union

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    ReadTimeoutError,
)

from ..models.config import Config
from ..models.outcome import ErrorKind, ErrorType, Outcome, StoreError
from ..models.results import (
    CompleteMultipartUploadResult,
    CreateBucketResult,
    CreateMultipartUploadResult,
    GetObjectResult,
    HeadObjectResult,
    ListBucketsResult,
    ListObjectsResult,
    PutObjectResult,
    UploadPartResult,
)
from ..models.upload import BucketHandle, BucketState
from ..utils.checksum import base64_digest, md5_digest
from ..utils.logger import LoggerManager
from .s3_client import ClientManager

Body = Union[bytes, bytearray, BinaryIO]
ResponseStreamFactory = Callable[[], BinaryIO]

COPY_BUFFER_SIZE = 1024 * 1024


def store_error_from_exception(exc: Exception,
                               not_found: ErrorType = ErrorType.UNKNOWN) -> StoreError:
    """botocore の例外を StoreError に変換

    HEAD 系の操作はボディを持たないため 404 しか返らない。
    その場合は呼び出し側が指定した not_found の型を使う。
    """
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        code = error.get("Code")
        message = error.get("Message") or str(exc)
        status_code = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")

        if code in ("404", "NotFound"):
            error_type = not_found
        elif code in ("403", "Forbidden"):
            error_type = ErrorType.ACCESS_DENIED
        else:
            error_type = ErrorType.from_code(code)
        return StoreError(ErrorKind.SERVICE, error_type, message, code, status_code)

    if isinstance(exc, (ConnectTimeoutError, ReadTimeoutError)):
        return StoreError(ErrorKind.TRANSPORT, ErrorType.REQUEST_TIMEOUT, str(exc))

    if isinstance(exc, BotoCoreError):
        return StoreError(ErrorKind.TRANSPORT, ErrorType.NETWORK_CONNECTION, str(exc))

    raise TypeError(f"Unsupported exception type: {type(exc).__name__}")


def _body_length(body: Body) -> int:
    if isinstance(body, (bytes, bytearray)):
        return len(body)
    start = body.tell()
    body.seek(0, io.SEEK_END)
    length = body.tell() - start
    body.seek(start)
    return length


def _discard(sink: Optional[BinaryIO]):
    if sink is None:
        return
    try:
        sink.close()
    except OSError:
        # 元のエラーを優先
        pass


class ObjectStore:
    """S3互換オブジェクトストアのクライアント"""

    def __init__(self, client: Any, max_concurrency: int = 4):
        self._client = client
        self.max_concurrency = max_concurrency
        self._pool = ThreadPoolExecutor(
            max_workers=max_concurrency,
            thread_name_prefix="s3-multipart",
        )
        self.logger = LoggerManager.get_logger("store")

    @classmethod
    def from_config(cls, config: Config) -> 'ObjectStore':
        """設定からS3クライアントを作成 (接続プールはワーカー数以上にする)"""
        max_concurrency = config.options.max_concurrency
        manager = ClientManager(config.aws, max_pool_connections=max(10, max_concurrency))
        return cls(manager.get_client("s3"), max_concurrency)

    @property
    def client(self) -> Any:
        return self._client

    def close(self):
        self._pool.shutdown(wait=True)

    def __enter__(self) -> 'ObjectStore':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def submit(self, fn: Callable[..., Outcome], *args, **kwargs) -> 'Future[Outcome]':
        """任意の操作をワーカープールで実行"""
        return self._pool.submit(fn, *args, **kwargs)

    def _call(self, operation: str, parser: Callable[[Dict[str, Any]], Any],
              not_found: ErrorType = ErrorType.UNKNOWN, **params) -> Outcome:
        try:
            response = getattr(self._client, operation)(**params)
        except (ClientError, BotoCoreError) as e:
            error = store_error_from_exception(e, not_found)
            self.logger.debug(f"{operation} failed: {error}")
            return Outcome.failure(error)
        return Outcome.success(parser(response))

    # ---- バケット操作 ----

    def create_bucket(self, bucket: str, acl: Optional[str] = None,
                      region: Optional[str] = None) -> Outcome[CreateBucketResult]:
        params: Dict[str, Any] = {"Bucket": bucket}
        if acl:
            params["ACL"] = acl
        # us-east-1 以外は LocationConstraint が必須
        if region and region != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": region}
        return self._call("create_bucket", CreateBucketResult.from_response, **params)

    def delete_bucket(self, bucket: str) -> Outcome[None]:
        return self._call("delete_bucket", lambda _: None,
                          not_found=ErrorType.NO_SUCH_BUCKET, Bucket=bucket)

    def head_bucket(self, bucket: str) -> Outcome[BucketHandle]:
        return self._call("head_bucket",
                          lambda _: BucketHandle(bucket, BucketState.PRESENT),
                          not_found=ErrorType.NO_SUCH_BUCKET, Bucket=bucket)

    def list_buckets(self) -> Outcome[ListBucketsResult]:
        return self._call("list_buckets", ListBucketsResult.from_response)

    def list_objects(self, bucket: str, prefix: Optional[str] = None,
                     marker: Optional[str] = None,
                     max_keys: Optional[int] = None) -> Outcome[ListObjectsResult]:
        params: Dict[str, Any] = {"Bucket": bucket}
        if prefix:
            params["Prefix"] = prefix
        if marker:
            params["Marker"] = marker
        if max_keys:
            params["MaxKeys"] = max_keys
        return self._call("list_objects", ListObjectsResult.from_response,
                          not_found=ErrorType.NO_SUCH_BUCKET, **params)

    # ---- オブジェクト操作 ----

    def put_object(self, bucket: str, key: str, body: Body,
                   content_type: Optional[str] = None) -> Outcome[PutObjectResult]:
        """オブジェクトを保存 (Content-MD5 を付与して転送中の破損を検出させる)"""
        params: Dict[str, Any] = {
            "Bucket": bucket,
            "Key": key,
            "Body": body,
            "ContentLength": _body_length(body),
            "ContentMD5": base64_digest(md5_digest(body)),
        }
        if content_type:
            params["ContentType"] = content_type
        return self._call("put_object", PutObjectResult.from_response, **params)

    def get_object(self, bucket: str, key: str,
                   response_stream_factory: Optional[ResponseStreamFactory] = None
                   ) -> Outcome[GetObjectResult]:
        """オブジェクトを取得

        response_stream_factory を渡すとボディをそのシンク (ファイル等) に書き出す。
        シンクのクローズは呼び出し側の責任。
        """
        try:
            response = self._client.get_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            error = store_error_from_exception(e, ErrorType.NO_SUCH_KEY)
            self.logger.debug(f"get_object failed: {error}")
            return Outcome.failure(error)

        stream = response["Body"]
        sink = None
        try:
            sink = response_stream_factory() if response_stream_factory else io.BytesIO()
            shutil.copyfileobj(stream, sink, COPY_BUFFER_SIZE)
            if response_stream_factory is None:
                sink.seek(0)
            else:
                sink.flush()
        except (ClientError, BotoCoreError) as e:
            _discard(sink)
            return Outcome.failure(store_error_from_exception(e))
        except OSError as e:
            # シンクの作成・書き込み失敗
            _discard(sink)
            error = StoreError(ErrorKind.TRANSPORT, ErrorType.RESPONSE_STREAM,
                               f"Failed to write response stream: {e}")
            self.logger.warning(f"get_object {bucket}/{key}: {error}")
            return Outcome.failure(error)
        finally:
            stream.close()

        return Outcome.success(GetObjectResult(
            body=sink,
            etag=response.get("ETag"),
            content_length=response.get("ContentLength", 0),
            content_type=response.get("ContentType"),
            last_modified=response.get("LastModified"),
        ))

    def head_object(self, bucket: str, key: str) -> Outcome[HeadObjectResult]:
        """オブジェクトのメタデータを取得

        HEAD の 404 はキーとバケットのどちらが無いのか区別できないため、
        バケットも確認して NO_SUCH_BUCKET / NO_SUCH_KEY を決める。
        """
        outcome = self._call("head_object", HeadObjectResult.from_response,
                             not_found=ErrorType.NO_SUCH_KEY, Bucket=bucket, Key=key)
        if outcome.is_success or outcome.error.code not in ("404", "NotFound"):
            return outcome

        bucket_outcome = self.head_bucket(bucket)
        if not bucket_outcome.is_success and \
                bucket_outcome.error.error_type is ErrorType.NO_SUCH_BUCKET:
            return bucket_outcome
        return outcome

    def delete_object(self, bucket: str, key: str) -> Outcome[None]:
        return self._call("delete_object", lambda _: None,
                          not_found=ErrorType.NO_SUCH_KEY, Bucket=bucket, Key=key)

    # ---- マルチパートアップロード ----

    def create_multipart_upload(self, bucket: str, key: str,
                                content_type: Optional[str] = None
                                ) -> Outcome[CreateMultipartUploadResult]:
        params: Dict[str, Any] = {"Bucket": bucket, "Key": key}
        if content_type:
            params["ContentType"] = content_type
        return self._call("create_multipart_upload",
                          CreateMultipartUploadResult.from_response, **params)

    def upload_part(self, bucket: str, key: str, upload_id: str, part_number: int,
                    body: bytes, content_md5: Optional[str] = None
                    ) -> Outcome[UploadPartResult]:
        params: Dict[str, Any] = {
            "Bucket": bucket,
            "Key": key,
            "UploadId": upload_id,
            "PartNumber": part_number,
            "Body": body,
            "ContentLength": len(body),
        }
        if content_md5:
            params["ContentMD5"] = content_md5
        return self._call("upload_part", UploadPartResult.from_response,
                          not_found=ErrorType.NO_SUCH_UPLOAD, **params)

    def upload_part_async(self, bucket: str, key: str, upload_id: str, part_number: int,
                          body: bytes, content_md5: Optional[str] = None
                          ) -> 'Future[Outcome[UploadPartResult]]':
        return self.submit(self.upload_part, bucket, key, upload_id, part_number,
                           body, content_md5)

    def complete_multipart_upload(self, bucket: str, key: str, upload_id: str,
                                  parts: Dict[str, Any]
                                  ) -> Outcome[CompleteMultipartUploadResult]:
        return self._call("complete_multipart_upload",
                          CompleteMultipartUploadResult.from_response,
                          not_found=ErrorType.NO_SUCH_UPLOAD,
                          Bucket=bucket, Key=key, UploadId=upload_id,
                          MultipartUpload=parts)

    def abort_multipart_upload(self, bucket: str, key: str, upload_id: str) -> Outcome[None]:
        return self._call("abort_multipart_upload", lambda _: None,
                          not_found=ErrorType.NO_SUCH_UPLOAD,
                          Bucket=bucket, Key=key, UploadId=upload_id)
