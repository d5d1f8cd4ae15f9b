"""パートの非同期アップロード"""
from concurrent.futures import Future
from typing import Optional

from ..errors import OrchestrationError
from ..models.outcome import Outcome
from ..models.results import UploadPartResult
from ..models.upload import MAX_PART_NUMBER, PartDescriptor, UploadSession
from ..utils.checksum import base64_digest, md5_digest
from ..utils.logger import LoggerManager
from .object_store import ObjectStore


class PartHandle:
    """投入済みパートのハンドル

    result() で完了を待ち、ETag付きの PartDescriptor か エラーを受け取る。
    """

    def __init__(self, descriptor: PartDescriptor,
                 future: 'Future[Outcome[UploadPartResult]]'):
        self.descriptor = descriptor
        self._future = future

    @property
    def part_number(self) -> int:
        return self.descriptor.part_number

    @property
    def md5(self) -> bytes:
        return self.descriptor.md5

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> Outcome[PartDescriptor]:
        outcome = self._future.result(timeout)
        if not outcome.is_success:
            return Outcome.failure(outcome.error)
        return Outcome.success(self.descriptor.acknowledged(outcome.result.etag))


class PartUploader:
    """1パート分の UploadPart リクエストを組み立てて投入する

    リトライは行わない (botocore のリトライ設定に任せる)。
    """

    def __init__(self, store: ObjectStore):
        self.store = store
        self.logger = LoggerManager.get_logger("part_uploader")

    def submit_part(self, session: UploadSession, part_number: int,
                    payload: bytes) -> PartHandle:
        if not 1 <= part_number <= MAX_PART_NUMBER:
            raise ValueError(
                f"part_number must be between 1 and {MAX_PART_NUMBER}, got {part_number}"
            )
        if not payload:
            raise ValueError(f"Part {part_number} payload is empty")
        if not session.upload_id:
            raise OrchestrationError(
                f"Upload of {session.bucket}/{session.key} has not been initiated"
            )

        payload = bytes(payload)
        md5 = md5_digest(payload)
        descriptor = PartDescriptor(part_number=part_number, payload=payload, md5=md5)

        self.logger.debug(
            f"Submitting part {part_number} ({len(payload)} bytes) "
            f"of {session.bucket}/{session.key}"
        )
        future = self.store.upload_part_async(
            session.bucket,
            session.key,
            session.upload_id,
            part_number,
            payload,
            content_md5=base64_digest(md5),
        )
        return PartHandle(descriptor, future)
