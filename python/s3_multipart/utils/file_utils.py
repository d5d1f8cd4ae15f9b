"""ファイル操作関連のユーティリティ"""
import os
from typing import Generator, List, Tuple
from dataclasses import dataclass


@dataclass
class FileInfo:
    """ファイル情報"""
    path: str
    size: int

    @property
    def name(self) -> str:
        return os.path.basename(self.path)

    @classmethod
    def from_path(cls, file_path: str) -> 'FileInfo':
        if not os.path.isfile(file_path):
            raise ValueError(f"Not a file: {file_path}")
        return cls(path=file_path, size=os.path.getsize(file_path))


class FileChunker:
    """ファイルをパート単位に分割"""

    def __init__(self, part_size: int):
        if part_size <= 0:
            raise ValueError(f"part_size must be positive, got {part_size}")
        self.part_size = part_size

    def count_parts(self, size: int) -> int:
        # 空ファイルも1パートとして扱う
        return max(1, -(-size // self.part_size))

    def iter_parts(self, file_info: FileInfo) -> Generator[Tuple[int, bytes], None, None]:
        """(パート番号, ペイロード) を1から順に生成"""
        with open(file_info.path, "rb") as file:
            part_number = 1
            while True:
                chunk = file.read(self.part_size)
                if not chunk:
                    break
                yield part_number, chunk
                part_number += 1

    def split(self, file_info: FileInfo) -> List[Tuple[int, bytes]]:
        return list(self.iter_parts(file_info))
