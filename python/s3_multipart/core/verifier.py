"""アップロード結果の整合性検証"""
from typing import Optional

from ..errors import IntegrityError
from ..models.results import PutObjectResult
from ..models.upload import PartDescriptor
from ..utils.checksum import hex_digest, md5_digest, quoted_etag, strip_etag_quotes
from ..utils.logger import LoggerManager


class CompletionVerifier:
    """ローカルのMD5とストアが返したETagを照合

    不一致は転送中のデータ破損を意味するので、回復せず IntegrityError を送出する。
    """

    def __init__(self):
        self.logger = LoggerManager.get_logger("verifier")

    @staticmethod
    def _etag_matches(expected_md5: bytes, etag: Optional[str]) -> bool:
        if not etag:
            return False
        return strip_etag_quotes(quoted_etag(expected_md5)) == strip_etag_quotes(etag)

    def verify(self, expected_md5: bytes, descriptor: PartDescriptor) -> bool:
        """パートのETagを検証"""
        if not self._etag_matches(expected_md5, descriptor.etag):
            self.logger.error(
                f"Checksum mismatch for part {descriptor.part_number}: "
                f"expected {quoted_etag(expected_md5)}, got {descriptor.etag}"
            )
            raise IntegrityError(
                f"Part {descriptor.part_number}: entity tag {descriptor.etag} does not match "
                f"local checksum {quoted_etag(expected_md5)}"
            )
        return True

    def verify_put(self, body: bytes, result: PutObjectResult) -> bool:
        """単一PUTのETagを検証"""
        expected = md5_digest(body)
        if not self._etag_matches(expected, result.etag):
            raise IntegrityError(
                f"PutObject entity tag {result.etag} does not match "
                f"local checksum {quoted_etag(expected)}"
            )
        return True

    def verify_object(self, expected_payload: bytes, actual_payload: bytes) -> bool:
        """組み立て後のオブジェクト全体をバイト単位とMD5で比較"""
        if len(expected_payload) != len(actual_payload):
            raise IntegrityError(
                f"Object size mismatch: expected {len(expected_payload)} bytes, "
                f"got {len(actual_payload)} bytes"
            )

        expected_md5 = md5_digest(expected_payload)
        actual_md5 = md5_digest(actual_payload)
        if expected_md5 != actual_md5 or expected_payload != actual_payload:
            raise IntegrityError(
                f"Object content mismatch: expected md5 {hex_digest(expected_md5)}, "
                f"got {hex_digest(actual_md5)}"
            )
        return True
