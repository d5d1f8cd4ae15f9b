"""s3_multipart コアモジュール"""
from .s3_client import ClientManager
from .object_store import ObjectStore
from .service_client import ServiceClient
from .part_uploader import PartHandle, PartUploader
from .verifier import CompletionVerifier
from .bucket_lifecycle import BucketLifecycle
from .orchestrator import MultipartOrchestrator
from .task_runner import TaskRunner

__all__ = [
    'ClientManager',
    'ObjectStore',
    'ServiceClient',
    'PartHandle',
    'PartUploader',
    'CompletionVerifier',
    'BucketLifecycle',
    'MultipartOrchestrator',
    'TaskRunner',
]
