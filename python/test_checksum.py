#!/usr/bin/env python3
"""チェックサムユーティリティのテスト"""
import io

from s3_multipart.utils.checksum import (
    base64_digest,
    hex_digest,
    md5_digest,
    quoted_etag,
    strip_etag_quotes,
)

TEST_OBJECT_MD5 = "6921b9217ab8ee0c2625a2cdfaec200b"  # md5("Test Object")


def test_md5_of_bytes():
    assert hex_digest(md5_digest(b"Test Object")) == TEST_OBJECT_MD5


def test_md5_of_stream_restores_position():
    stream = io.BytesIO(b"xxTest Object")
    stream.seek(2)

    digest = md5_digest(stream)

    assert hex_digest(digest) == TEST_OBJECT_MD5
    assert stream.tell() == 2


def test_etag_and_content_md5_encodings():
    digest = md5_digest(b"Test Object")

    assert quoted_etag(digest) == f'"{TEST_OBJECT_MD5}"'
    assert base64_digest(digest) == "aSG5IXq47gwmJaLN+uwgCw=="
    assert strip_etag_quotes(f' "{TEST_OBJECT_MD5}" ') == TEST_OBJECT_MD5
