"""バケットの作成・空にする・削除と、結果整合性のためのポーリング"""
import time
from typing import Callable, Optional

from ..models.config import MultipartOptions
from ..models.outcome import Outcome
from ..models.results import CreateBucketResult
from ..models.upload import BucketHandle, BucketState
from ..utils.logger import LoggerManager
from .object_store import ObjectStore


class BucketLifecycle:
    """バケットのセットアップ／後片付け

    ポーリングは回数上限 (propagation_max_attempts) と固定間隔で行い、
    上限に達した場合は例外ではなく False を返す。
    """

    def __init__(self, store: ObjectStore, options: Optional[MultipartOptions] = None,
                 region: Optional[str] = None,
                 sleep: Callable[[float], None] = time.sleep):
        options = options or MultipartOptions()
        self.store = store
        self.max_attempts = options.propagation_max_attempts
        self.interval = options.propagation_interval_seconds
        self.region = region
        self._sleep = sleep
        self.logger = LoggerManager.get_logger("bucket")

    def _poll(self, check: Callable[[], bool], description: str) -> bool:
        for attempt in range(1, self.max_attempts + 1):
            if check():
                return True
            if attempt < self.max_attempts:
                self._sleep(self.interval)
        self.logger.warning(f"Timed out after {self.max_attempts} attempts waiting for {description}")
        return False

    def probe(self, name: str) -> BucketHandle:
        """HeadBucket で現在の状態を確認"""
        outcome = self.store.head_bucket(name)
        if outcome.is_success:
            return BucketHandle(name, BucketState.PRESENT)
        if outcome.error.is_not_found:
            return BucketHandle(name, BucketState.ABSENT)
        self.logger.warning(f"Could not determine state of bucket {name}: {outcome.error}")
        return BucketHandle(name, BucketState.UNKNOWN)

    def create(self, name: str, acl: Optional[str] = None) -> Outcome[CreateBucketResult]:
        outcome = self.store.create_bucket(name, acl=acl, region=self.region)
        if outcome.is_success:
            self.logger.info(f"Created bucket {name} at {outcome.result.location}")
        else:
            self.logger.error(f"Failed to create bucket {name}: {outcome.error}")
        return outcome

    def ensure_present(self, name: str, acl: Optional[str] = None) -> bool:
        """存在しなければ作成し、参照可能になるまで待つ"""
        handle = self.probe(name)
        if handle.exists:
            return True
        if not self.create(name, acl).is_success:
            return False
        return self.wait_until_present(name)

    def empty(self, name: str) -> int:
        """全オブジェクトを1件ずつ削除し、削除した件数を返す"""
        deleted = 0
        marker = None
        while True:
            outcome = self.store.list_objects(name, marker=marker)
            if not outcome.is_success:
                self.logger.warning(f"Could not list objects in {name}: {outcome.error}")
                return deleted

            for obj in outcome.result.contents:
                delete_outcome = self.store.delete_object(name, obj.key)
                if delete_outcome.is_success:
                    deleted += 1
                else:
                    self.logger.warning(f"Could not delete {name}/{obj.key}: {delete_outcome.error}")

            if not outcome.result.is_truncated:
                break
            marker = outcome.result.next_marker

        self.logger.info(f"Deleted {deleted} objects from {name}")
        return deleted

    def wait_until_empty(self, name: str) -> bool:
        def is_empty() -> bool:
            outcome = self.store.list_objects(name, max_keys=1)
            return outcome.is_success and not outcome.result.contents

        return self._poll(is_empty, f"bucket {name} to become empty")

    def ensure_absent(self, name: str) -> bool:
        """バケットを空にして削除する (既に存在しなければ何もしない)"""
        handle = self.probe(name)
        if handle.state is BucketState.ABSENT:
            return True
        if handle.state is BucketState.UNKNOWN:
            return False

        self.empty(name)
        self.wait_until_empty(name)

        outcome = self.store.delete_bucket(name)
        if not outcome.is_success and not outcome.error.is_not_found:
            self.logger.error(f"Failed to delete bucket {name}: {outcome.error}")
            return False

        self.logger.info(f"Deleted bucket {name}")
        return self.wait_until_absent(name)

    def wait_until_present(self, name: str) -> bool:
        return self._poll(lambda: self.store.head_bucket(name).is_success,
                          f"bucket {name} to exist")

    def wait_until_absent(self, name: str) -> bool:
        return self._poll(lambda: self.probe(name).state is BucketState.ABSENT,
                          f"bucket {name} to be deleted")

    def wait_until_object_present(self, name: str, key: str) -> bool:
        return self._poll(lambda: self.store.head_object(name, key).is_success,
                          f"object {name}/{key} to exist")

    def wait_until_object_absent(self, name: str, key: str) -> bool:
        def is_absent() -> bool:
            outcome = self.store.head_object(name, key)
            return not outcome.is_success and outcome.error.is_not_found

        return self._poll(is_absent, f"object {name}/{key} to be deleted")
