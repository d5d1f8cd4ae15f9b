"""コンテンツチェックサム (MD5) ユーティリティ

S3 の ETag は単一PUT・各パートともに MD5 の16進表現をダブルクォートで囲んだもの。
Content-MD5 ヘッダーには同じダイジェストの Base64 表現を送る。
"""
import base64
import hashlib
from typing import BinaryIO, Union

CHUNK_SIZE = 1024 * 1024

Payload = Union[bytes, bytearray, memoryview, BinaryIO]


def md5_digest(data: Payload) -> bytes:
    """バイト列またはストリームの MD5 ダイジェストを計算

    ストリームの場合は読み取り後に元の位置へ戻す。
    """
    md5 = hashlib.md5()
    if isinstance(data, (bytes, bytearray, memoryview)):
        md5.update(data)
        return md5.digest()

    start = data.tell()
    while True:
        chunk = data.read(CHUNK_SIZE)
        if not chunk:
            break
        md5.update(chunk)
    data.seek(start)
    return md5.digest()


def hex_digest(digest: bytes) -> str:
    return digest.hex()


def base64_digest(digest: bytes) -> str:
    """Content-MD5 ヘッダー用"""
    return base64.b64encode(digest).decode("ascii")


def quoted_etag(digest: bytes) -> str:
    """ダイジェストを ETag 形式 ("<hex>") に変換"""
    return f'"{hex_digest(digest)}"'


def strip_etag_quotes(etag: str) -> str:
    return etag.strip().strip('"')
