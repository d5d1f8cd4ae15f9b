#!/usr/bin/env python3
"""タスクランナーとエントリーポイントのテスト"""
import json
from unittest.mock import patch

import pytest

from conftest import client_error
from s3_multipart import S3Multipart
from s3_multipart.core.task_runner import TaskRunner
from s3_multipart.models.config import Config, MIN_PART_SIZE, UploadTask
from s3_multipart.utils.file_utils import FileChunker, FileInfo


def _config(tasks, **options):
    options.setdefault("part_size", MIN_PART_SIZE)
    options.setdefault("propagation_interval_seconds", 0.0)
    return Config.from_dict({"options": options, "upload_tasks": tasks})


@pytest.fixture
def big_file(tmp_path):
    path = tmp_path / "big.bin"
    path.write_bytes(bytes(range(256)) * (MIN_PART_SIZE // 256 * 2 + 10))
    return path


def test_file_chunker_splits_in_order(big_file):
    info = FileInfo.from_path(str(big_file))
    chunker = FileChunker(MIN_PART_SIZE)

    parts = chunker.split(info)

    assert [number for number, _ in parts] == [1, 2, 3]
    assert chunker.count_parts(info.size) == 3
    assert b"".join(payload for _, payload in parts) == big_file.read_bytes()
    assert len(parts[-1][1]) == 2560


def test_file_info_rejects_directories(tmp_path):
    with pytest.raises(ValueError):
        FileInfo.from_path(str(tmp_path))


def test_large_file_uses_multipart(store, fake_s3, big_file):
    config = _config([
        {"name": "big", "source": str(big_file), "bucket": "bkt", "create_bucket": True},
    ])

    successful, failed = TaskRunner(config, store).run_all_tasks()

    assert (successful, failed) == (1, 0)
    assert sorted(fake_s3.upload_part_calls) == [1, 2, 3]
    assert fake_s3.buckets["bkt"]["big.bin"]["data"] == big_file.read_bytes()


def test_small_file_uses_single_put(store, fake_s3, tmp_path):
    source = tmp_path / "small.txt"
    source.write_bytes(b"Test Object")
    config = _config([{
        "name": "small", "source": str(source), "bucket": "bkt",
        "key": "TestObjectKey", "content_type": "text/plain", "create_bucket": True,
    }])

    assert TaskRunner(config, store).run_all_tasks() == (1, 0)
    stored = fake_s3.buckets["bkt"]["TestObjectKey"]
    assert stored["etag"] == '"6921b9217ab8ee0c2625a2cdfaec200b"'
    assert stored["content_type"] == "text/plain"
    assert fake_s3.upload_part_calls == []


def test_failures_are_counted(store, fake_s3, big_file, tmp_path):
    fake_s3.create_bucket(Bucket="bkt")
    fake_s3.fail_parts[2] = client_error("InternalError", "boom", 500, "UploadPart")
    config = _config([
        {"name": "missing", "source": str(tmp_path / "nope.bin"), "bucket": "bkt"},
        {"name": "disabled", "source": str(big_file), "bucket": "bkt", "enabled": False},
        {"name": "no-bucket", "source": str(big_file), "bucket": "other"},
        {"name": "part-fails", "source": str(big_file), "bucket": "bkt"},
    ])

    assert TaskRunner(config, store).run_all_tasks() == (0, 3)
    # 失敗したアップロードは中止されている
    assert fake_s3.uploads == {}


def test_dry_run_does_not_touch_store(store, fake_s3, big_file):
    config = _config(
        [{"name": "big", "source": str(big_file), "bucket": "bkt", "create_bucket": True}],
        dry_run=True,
    )

    assert TaskRunner(config, store).run_task(UploadTask(**{
        "name": "big", "source": str(big_file), "bucket": "bkt",
    }))
    assert TaskRunner(config, store).run_all_tasks() == (1, 0)
    assert fake_s3.buckets == {}


def test_facade_runs_tasks_from_config_file(tmp_path, fake_s3):
    source = tmp_path / "small.txt"
    source.write_bytes(b"hello")
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({
        "logging": {"level": "WARNING"},
        "options": {"propagation_interval_seconds": 0.0},
        "upload_tasks": [
            {"name": "small", "source": str(source), "bucket": "bkt", "create_bucket": True},
        ],
    }), encoding="utf-8")

    with patch("s3_multipart.core.object_store.ClientManager") as manager:
        manager.return_value.get_client.return_value = fake_s3
        runner = S3Multipart(str(config_path))
        assert runner.run() == (1, 0)

    assert fake_s3.buckets["bkt"]["small.txt"]["data"] == b"hello"
