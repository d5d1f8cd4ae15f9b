"""APIレスポンスの型付き結果クラス

boto3 が返す辞書から必要なフィールドだけを取り出す。
レスポンスに存在しないフィールドはデフォルト値のまま残す。
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, BinaryIO, Dict, List, Optional


@dataclass
class CreateBucketResult:
    location: Optional[str] = None

    @classmethod
    def from_response(cls, response: Dict[str, Any]) -> 'CreateBucketResult':
        return cls(location=response.get("Location"))


@dataclass
class BucketSummary:
    name: str
    creation_date: Optional[datetime] = None


@dataclass
class ListBucketsResult:
    buckets: List[BucketSummary] = field(default_factory=list)
    owner_id: Optional[str] = None

    @classmethod
    def from_response(cls, response: Dict[str, Any]) -> 'ListBucketsResult':
        result = cls()
        for bucket in response.get("Buckets", []):
            result.buckets.append(
                BucketSummary(name=bucket["Name"], creation_date=bucket.get("CreationDate"))
            )
        if "Owner" in response:
            result.owner_id = response["Owner"].get("ID")
        return result

    def names(self) -> List[str]:
        return [bucket.name for bucket in self.buckets]


@dataclass
class ObjectSummary:
    key: str
    etag: Optional[str] = None
    size: int = 0
    last_modified: Optional[datetime] = None


@dataclass
class ListObjectsResult:
    """ListObjects の1ページ分"""
    contents: List[ObjectSummary] = field(default_factory=list)
    is_truncated: bool = False
    next_marker: Optional[str] = None

    @classmethod
    def from_response(cls, response: Dict[str, Any]) -> 'ListObjectsResult':
        result = cls(is_truncated=bool(response.get("IsTruncated", False)))
        for obj in response.get("Contents", []):
            result.contents.append(ObjectSummary(
                key=obj["Key"],
                etag=obj.get("ETag"),
                size=obj.get("Size", 0),
                last_modified=obj.get("LastModified"),
            ))
        # NextMarker は Delimiter 指定時のみ返るため、最後のキーで補う
        if result.is_truncated:
            result.next_marker = response.get("NextMarker") or (
                result.contents[-1].key if result.contents else None
            )
        return result

    def keys(self) -> List[str]:
        return [obj.key for obj in self.contents]


@dataclass
class PutObjectResult:
    etag: Optional[str] = None
    version_id: Optional[str] = None

    @classmethod
    def from_response(cls, response: Dict[str, Any]) -> 'PutObjectResult':
        return cls(etag=response.get("ETag"), version_id=response.get("VersionId"))


@dataclass
class GetObjectResult:
    """GetObject の結果

    body はレスポンスストリームの書き込み先 (デフォルトは先頭に巻き戻した BytesIO)。
    """
    body: Optional[BinaryIO] = None
    etag: Optional[str] = None
    content_length: int = 0
    content_type: Optional[str] = None
    last_modified: Optional[datetime] = None

    def read(self) -> bytes:
        """in-memory のボディを読み出す"""
        if self.body is None:
            return b""
        return self.body.read()

    def close(self):
        if self.body is not None:
            self.body.close()

    def __enter__(self) -> 'GetObjectResult':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


@dataclass
class HeadObjectResult:
    etag: Optional[str] = None
    content_length: int = 0
    content_type: Optional[str] = None
    last_modified: Optional[datetime] = None

    @classmethod
    def from_response(cls, response: Dict[str, Any]) -> 'HeadObjectResult':
        return cls(
            etag=response.get("ETag"),
            content_length=response.get("ContentLength", 0),
            content_type=response.get("ContentType"),
            last_modified=response.get("LastModified"),
        )


@dataclass
class CreateMultipartUploadResult:
    bucket: Optional[str] = None
    key: Optional[str] = None
    upload_id: Optional[str] = None

    @classmethod
    def from_response(cls, response: Dict[str, Any]) -> 'CreateMultipartUploadResult':
        return cls(
            bucket=response.get("Bucket"),
            key=response.get("Key"),
            upload_id=response.get("UploadId"),
        )


@dataclass
class UploadPartResult:
    etag: Optional[str] = None

    @classmethod
    def from_response(cls, response: Dict[str, Any]) -> 'UploadPartResult':
        return cls(etag=response.get("ETag"))


@dataclass
class CompleteMultipartUploadResult:
    location: Optional[str] = None
    bucket: Optional[str] = None
    key: Optional[str] = None
    etag: Optional[str] = None
    version_id: Optional[str] = None

    @classmethod
    def from_response(cls, response: Dict[str, Any]) -> 'CompleteMultipartUploadResult':
        return cls(
            location=response.get("Location"),
            bucket=response.get("Bucket"),
            key=response.get("Key"),
            etag=response.get("ETag"),
            version_id=response.get("VersionId"),
        )


# ---- API Gateway / CloudWatch Logs ----

@dataclass
class DocumentationPartResult:
    """API Gateway GetDocumentationPart"""
    id: Optional[str] = None
    location: Optional[Dict[str, Any]] = None
    properties: Optional[str] = None

    @classmethod
    def from_response(cls, response: Dict[str, Any]) -> 'DocumentationPartResult':
        result = cls()
        if "id" in response:
            result.id = response["id"]
        if "location" in response:
            result.location = dict(response["location"])
        if "properties" in response:
            result.properties = response["properties"]
        return result


@dataclass
class SubscriptionFilter:
    filter_name: Optional[str] = None
    log_group_name: Optional[str] = None
    filter_pattern: Optional[str] = None
    destination_arn: Optional[str] = None
    role_arn: Optional[str] = None
    distribution: Optional[str] = None
    creation_time: Optional[int] = None

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> 'SubscriptionFilter':
        return cls(
            filter_name=data.get("filterName"),
            log_group_name=data.get("logGroupName"),
            filter_pattern=data.get("filterPattern"),
            destination_arn=data.get("destinationArn"),
            role_arn=data.get("roleArn"),
            distribution=data.get("distribution"),
            creation_time=data.get("creationTime"),
        )


@dataclass
class DescribeSubscriptionFiltersResult:
    """CloudWatch Logs DescribeSubscriptionFilters"""
    subscription_filters: List[SubscriptionFilter] = field(default_factory=list)
    next_token: Optional[str] = None

    @classmethod
    def from_response(cls, response: Dict[str, Any]) -> 'DescribeSubscriptionFiltersResult':
        result = cls()
        for item in response.get("subscriptionFilters", []):
            result.subscription_filters.append(SubscriptionFilter.from_response(item))
        if "nextToken" in response:
            result.next_token = response["nextToken"]
        return result
