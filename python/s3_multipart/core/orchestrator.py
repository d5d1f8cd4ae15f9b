"""マルチパートアップロードの実行と検証

initiate -> パートを並列投入 -> 全て待つ -> マニフェスト作成 -> finalize
-> オブジェクトを取得して元のペイロードと比較、の順に進める。
"""
from typing import Dict, List, Optional, Sequence, Tuple

from ..errors import (
    FinalizationError,
    InitiationError,
    IntegrityError,
    OrchestrationError,
    PartUploadError,
    S3MultipartError,
)
from ..models.config import MultipartOptions
from ..models.results import CompleteMultipartUploadResult
from ..models.upload import (
    MAX_PART_NUMBER,
    CompletionManifest,
    PartDescriptor,
    SessionState,
    UploadSession,
)
from ..utils.logger import LoggerManager
from ..utils.progress import ProgressManager
from .bucket_lifecycle import BucketLifecycle
from .object_store import ObjectStore
from .part_uploader import PartHandle, PartUploader
from .verifier import CompletionVerifier


class MultipartOrchestrator:
    """マルチパートアップロードのセッションを駆動する"""

    def __init__(self, store: ObjectStore, options: Optional[MultipartOptions] = None,
                 lifecycle: Optional[BucketLifecycle] = None):
        self.store = store
        self.options = options or MultipartOptions()
        self.lifecycle = lifecycle or BucketLifecycle(store, self.options)
        self.uploader = PartUploader(store)
        self.verifier = CompletionVerifier()
        self.progress_manager = ProgressManager()
        self.logger = LoggerManager.get_logger("orchestrator")

    def initiate(self, bucket: str, key: str,
                 content_type: Optional[str] = None) -> UploadSession:
        session = UploadSession(bucket=bucket, key=key, content_type=content_type)
        outcome = self.store.create_multipart_upload(bucket, key, content_type)
        if not outcome.is_success:
            raise InitiationError(
                f"Could not initiate multipart upload of {bucket}/{key}: {outcome.error}",
                outcome.error,
            )
        if not outcome.result.upload_id:
            raise InitiationError(f"Store returned no upload id for {bucket}/{key}")

        session.upload_id = outcome.result.upload_id
        session.transition(SessionState.INITIATED)
        self.logger.info(f"Initiated multipart upload of {bucket}/{key} ({session.upload_id})")
        return session

    def upload_parts_concurrently(self, session: UploadSession,
                                  parts: Sequence[Tuple[int, bytes]]) -> List[PartDescriptor]:
        """全パートを待たずに投入し、その後それぞれの完了を待つ

        失敗したパートがあっても他のパートはキャンセルせず完了させ、
        最も小さいパート番号の失敗を PartUploadError として送出する。
        """
        if not parts:
            raise OrchestrationError("No parts to upload")
        numbers = [number for number, _ in parts]
        if len(set(numbers)) != len(numbers):
            raise OrchestrationError(f"Duplicate part numbers: {sorted(numbers)}")
        already = sorted(set(numbers) & set(session.parts))
        if already:
            raise OrchestrationError(f"Parts already uploaded: {already}")
        for number, payload in parts:
            if not 1 <= number <= MAX_PART_NUMBER:
                raise OrchestrationError(f"Part number out of range: {number}")
            if not payload:
                raise OrchestrationError(f"Part {number} payload is empty")

        session.transition(SessionState.PARTS_UPLOADING)

        tracker = None
        if self.options.enable_progress:
            tracker = self.progress_manager.create_tracker(
                f"{session.bucket}/{session.key}",
                sum(len(payload) for _, payload in parts),
                len(parts),
            )

        handles: List[PartHandle] = [
            self.uploader.submit_part(session, number, payload) for number, payload in parts
        ]
        self.logger.info(
            f"Submitted {len(handles)} parts of {session.bucket}/{session.key}"
        )

        failures: Dict[int, S3MultipartError] = {}
        descriptors: List[PartDescriptor] = []
        for handle in handles:
            try:
                outcome = handle.result()
            except Exception as e:
                self.logger.error(f"Part {handle.part_number} raised: {e}")
                failures[handle.part_number] = PartUploadError(handle.part_number, str(e))
                continue

            if not outcome.is_success:
                self.logger.error(f"Part {handle.part_number} failed: {outcome.error}")
                failures[handle.part_number] = PartUploadError(
                    handle.part_number, str(outcome.error), outcome.error
                )
                continue

            descriptor = outcome.result
            try:
                self.verifier.verify(handle.md5, descriptor)
            except IntegrityError as e:
                failures[handle.part_number] = e
                continue

            session.record_part(descriptor)
            descriptors.append(descriptor)
            if tracker:
                tracker.part_done(descriptor.part_number, descriptor.size)

        if tracker:
            self.progress_manager.remove_tracker(tracker.name)

        if failures:
            first = min(failures)
            self.logger.error(
                f"{len(failures)} of {len(handles)} parts failed for "
                f"{session.bucket}/{session.key}: {sorted(failures)}"
            )
            raise failures[first]

        if tracker:
            tracker.complete()
        session.transition(SessionState.PARTS_COMPLETE)
        return sorted(descriptors, key=lambda d: d.part_number)

    def build_manifest(self, session: UploadSession) -> CompletionManifest:
        return CompletionManifest.from_descriptors(session.ordered_parts())

    def finalize(self, session: UploadSession,
                 manifest: Optional[CompletionManifest] = None) -> CompleteMultipartUploadResult:
        if session.state is not SessionState.PARTS_COMPLETE:
            raise FinalizationError(
                f"Cannot finalize {session.bucket}/{session.key} in state {session.state.value}"
            )
        manifest = manifest if manifest is not None else self.build_manifest(session)
        manifest.validate(session)

        outcome = self.store.complete_multipart_upload(
            session.bucket, session.key, session.upload_id, manifest.to_request()
        )
        if not outcome.is_success:
            raise FinalizationError(
                f"Could not complete multipart upload of {session.bucket}/{session.key}: "
                f"{outcome.error}",
                outcome.error,
            )

        session.transition(SessionState.FINALIZED)
        self.logger.info(
            f"Completed multipart upload of {session.bucket}/{session.key} "
            f"with {len(manifest)} parts"
        )
        return outcome.result

    def abort(self, session: UploadSession) -> bool:
        """セッションを中止 (アップロード済みパートはストア側で破棄される)"""
        if session.state.is_terminal:
            return session.state is SessionState.ABORTED

        if session.upload_id:
            outcome = self.store.abort_multipart_upload(
                session.bucket, session.key, session.upload_id
            )
            if not outcome.is_success and not outcome.error.is_not_found:
                self.logger.error(
                    f"Failed to abort upload of {session.bucket}/{session.key}: {outcome.error}"
                )
                return False

        session.transition(SessionState.ABORTED)
        self.logger.warning(f"Aborted multipart upload of {session.bucket}/{session.key}")
        return True

    def verify_object(self, session: UploadSession,
                      expected_payload: Optional[bytes] = None) -> bool:
        """完成したオブジェクトを取得して元のパートの連結と比較"""
        if session.state is not SessionState.FINALIZED:
            raise OrchestrationError(
                f"Cannot verify {session.bucket}/{session.key} in state {session.state.value}"
            )
        if expected_payload is None:
            expected_payload = session.assembled_payload()

        if not self.lifecycle.wait_until_object_present(session.bucket, session.key):
            raise IntegrityError(f"Object {session.bucket}/{session.key} never became visible")

        outcome = self.store.get_object(session.bucket, session.key)
        if not outcome.is_success:
            raise outcome.error.to_exception()

        with outcome.result as result:
            actual = result.read()
        self.verifier.verify_object(expected_payload, actual)
        self.logger.info(f"Verified {session.bucket}/{session.key} ({len(actual)} bytes)")
        return True

    def upload(self, bucket: str, key: str, parts: Sequence[Tuple[int, bytes]],
               content_type: Optional[str] = None,
               verify: Optional[bool] = None) -> CompleteMultipartUploadResult:
        """initiate から検証までを一括で実行

        initiate 後に失敗した場合はセッションを中止してから例外を再送出する。
        """
        verify = self.options.verify_download if verify is None else verify
        session = self.initiate(bucket, key, content_type)
        try:
            self.upload_parts_concurrently(session, parts)
            result = self.finalize(session)
        except Exception:
            if self.options.abort_on_failure:
                self.abort(session)
            raise

        if verify:
            ordered = sorted(parts, key=lambda part: part[0])
            self.verify_object(session, b"".join(payload for _, payload in ordered))
        return result
