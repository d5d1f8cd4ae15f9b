"""共通フィクスチャ

FakeS3Client は boto3 S3 クライアントのレスポンス形状を真似たインメモリ実装。
エラーは本物の botocore ClientError で返す。
"""
import base64
import hashlib
import io
import threading
import uuid
from datetime import datetime, timezone

import pytest
from botocore.exceptions import ClientError

from s3_multipart.core.bucket_lifecycle import BucketLifecycle
from s3_multipart.core.object_store import ObjectStore
from s3_multipart.models.config import MultipartOptions
from s3_multipart.utils.logger import LoggerManager


def client_error(code, message, status, operation):
    return ClientError(
        {
            "Error": {"Code": code, "Message": message},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


def _read(body):
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    return body.read()


def _etag(data):
    return f'"{hashlib.md5(data).hexdigest()}"'


class FakeS3Client:
    """スレッドセーフなインメモリS3"""

    def __init__(self, min_part_size=0):
        self.min_part_size = min_part_size
        self.buckets = {}
        self.uploads = {}
        self.lock = threading.Lock()
        # パート番号 -> 送出する例外
        self.fail_parts = {}
        # ETag を壊して返すパート番号
        self.corrupt_parts = set()
        self.upload_part_calls = []

    def _bucket(self, name, operation):
        if name not in self.buckets:
            raise client_error("NoSuchBucket", "The specified bucket does not exist", 404, operation)
        return self.buckets[name]

    # ---- buckets ----

    def create_bucket(self, Bucket, ACL=None, CreateBucketConfiguration=None):
        with self.lock:
            if Bucket in self.buckets:
                raise client_error("BucketAlreadyOwnedByYou", "Bucket exists", 409, "CreateBucket")
            self.buckets[Bucket] = {}
        return {"Location": f"/{Bucket}"}

    def head_bucket(self, Bucket):
        if Bucket not in self.buckets:
            raise client_error("404", "Not Found", 404, "HeadBucket")
        return {}

    def delete_bucket(self, Bucket):
        with self.lock:
            objects = self._bucket(Bucket, "DeleteBucket")
            if objects:
                raise client_error("BucketNotEmpty", "The bucket is not empty", 409, "DeleteBucket")
            del self.buckets[Bucket]
        return {}

    def list_buckets(self):
        return {
            "Buckets": [
                {"Name": name, "CreationDate": datetime.now(timezone.utc)}
                for name in sorted(self.buckets)
            ],
            "Owner": {"ID": "owner-id"},
        }

    def list_objects(self, Bucket, Prefix="", Marker="", MaxKeys=1000):
        objects = self._bucket(Bucket, "ListObjects")
        keys = sorted(k for k in objects if k.startswith(Prefix) and k > Marker)
        page = keys[:MaxKeys]
        response = {"IsTruncated": len(keys) > MaxKeys, "Name": Bucket}
        if page:
            response["Contents"] = [
                {"Key": k, "ETag": objects[k]["etag"], "Size": len(objects[k]["data"])}
                for k in page
            ]
        return response

    # ---- objects ----

    def put_object(self, Bucket, Key, Body, ContentLength=None, ContentMD5=None,
                   ContentType=None):
        data = _read(Body)
        if ContentMD5 is not None:
            if base64.b64encode(hashlib.md5(data).digest()).decode() != ContentMD5:
                raise client_error("BadDigest", "Content-MD5 mismatch", 400, "PutObject")
        with self.lock:
            objects = self._bucket(Bucket, "PutObject")
            objects[Key] = {"data": data, "etag": _etag(data), "content_type": ContentType}
        return {"ETag": _etag(data)}

    def get_object(self, Bucket, Key):
        objects = self._bucket(Bucket, "GetObject")
        if Key not in objects:
            raise client_error("NoSuchKey", "The specified key does not exist.", 404, "GetObject")
        obj = objects[Key]
        return {
            "Body": io.BytesIO(obj["data"]),
            "ETag": obj["etag"],
            "ContentLength": len(obj["data"]),
            "ContentType": obj["content_type"],
        }

    def head_object(self, Bucket, Key):
        objects = self.buckets.get(Bucket)
        if objects is None or Key not in objects:
            raise client_error("404", "Not Found", 404, "HeadObject")
        obj = objects[Key]
        return {
            "ETag": obj["etag"],
            "ContentLength": len(obj["data"]),
            "ContentType": obj["content_type"],
        }

    def delete_object(self, Bucket, Key):
        with self.lock:
            self._bucket(Bucket, "DeleteObject").pop(Key, None)
        return {}

    # ---- multipart ----

    def create_multipart_upload(self, Bucket, Key, ContentType=None):
        self._bucket(Bucket, "CreateMultipartUpload")
        upload_id = uuid.uuid4().hex
        with self.lock:
            self.uploads[upload_id] = {
                "bucket": Bucket, "key": Key, "content_type": ContentType, "parts": {},
            }
        return {"Bucket": Bucket, "Key": Key, "UploadId": upload_id}

    def _upload(self, UploadId, operation):
        if UploadId not in self.uploads:
            raise client_error("NoSuchUpload", "The specified upload does not exist.", 404, operation)
        return self.uploads[UploadId]

    def upload_part(self, Bucket, Key, UploadId, PartNumber, Body, ContentLength=None,
                    ContentMD5=None):
        with self.lock:
            self.upload_part_calls.append(PartNumber)
        if PartNumber in self.fail_parts:
            raise self.fail_parts[PartNumber]
        data = _read(Body)
        with self.lock:
            upload = self._upload(UploadId, "UploadPart")
            upload["parts"][PartNumber] = data
        if PartNumber in self.corrupt_parts:
            return {"ETag": _etag(data + b"corrupted")}
        return {"ETag": _etag(data)}

    def complete_multipart_upload(self, Bucket, Key, UploadId, MultipartUpload):
        with self.lock:
            upload = self._upload(UploadId, "CompleteMultipartUpload")
            parts = MultipartUpload["Parts"]
            numbers = [p["PartNumber"] for p in parts]
            if numbers != sorted(numbers):
                raise client_error("InvalidPartOrder", "Parts not ascending", 400,
                                   "CompleteMultipartUpload")
            chunks = []
            for index, part in enumerate(parts):
                data = upload["parts"].get(part["PartNumber"])
                if data is None or _etag(data) != part["ETag"]:
                    raise client_error("InvalidPart", "One or more parts could not be found", 400,
                                       "CompleteMultipartUpload")
                if index < len(parts) - 1 and len(data) < self.min_part_size:
                    raise client_error("EntityTooSmall", "Part too small", 400,
                                       "CompleteMultipartUpload")
                chunks.append(data)

            data = b"".join(chunks)
            digests = b"".join(hashlib.md5(chunk).digest() for chunk in chunks)
            etag = f'"{hashlib.md5(digests).hexdigest()}-{len(chunks)}"'
            objects = self._bucket(Bucket, "CompleteMultipartUpload")
            objects[Key] = {"data": data, "etag": etag, "content_type": upload["content_type"]}
            del self.uploads[UploadId]
        return {"Location": f"/{Bucket}/{Key}", "Bucket": Bucket, "Key": Key, "ETag": etag}

    def abort_multipart_upload(self, Bucket, Key, UploadId):
        with self.lock:
            self._upload(UploadId, "AbortMultipartUpload")
            del self.uploads[UploadId]
        return {}


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    LoggerManager.reset()


@pytest.fixture
def fake_s3():
    return FakeS3Client()


@pytest.fixture
def options():
    return MultipartOptions(propagation_max_attempts=3, propagation_interval_seconds=0.0)


@pytest.fixture
def store(fake_s3):
    """テストごとにワーカープールを持つストアを作り、終了時に解放する"""
    with ObjectStore(fake_s3, max_concurrency=4) as object_store:
        yield object_store


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def lifecycle(store, options, sleeps):
    return BucketLifecycle(store, options, sleep=sleeps.append)
