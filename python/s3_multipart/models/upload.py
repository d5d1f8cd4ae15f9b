"""マルチパートアップロードのセッション・パート・マニフェスト"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from ..errors import FinalizationError, OrchestrationError
from ..utils.checksum import hex_digest, strip_etag_quotes

MAX_PART_NUMBER = 10000


class SessionState(Enum):
    """セッションの状態"""
    CREATED = "created"
    INITIATED = "initiated"
    PARTS_UPLOADING = "parts_uploading"
    PARTS_COMPLETE = "parts_complete"
    FINALIZED = "finalized"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.FINALIZED, SessionState.ABORTED)


# 状態遷移表 (ABORTED へは非終端状態からいつでも遷移可能)
_TRANSITIONS = {
    SessionState.CREATED: {SessionState.INITIATED},
    SessionState.INITIATED: {SessionState.PARTS_UPLOADING},
    SessionState.PARTS_UPLOADING: {SessionState.PARTS_COMPLETE},
    SessionState.PARTS_COMPLETE: {SessionState.PARTS_UPLOADING, SessionState.FINALIZED},
}


@dataclass(frozen=True)
class PartDescriptor:
    """アップロード済み (または送信前) のパート

    etag はストアがアップロード成功を返した後にだけ設定される。
    """
    part_number: int
    payload: bytes = field(repr=False)
    md5: bytes
    etag: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.payload)

    @property
    def checksum_hex(self) -> str:
        return hex_digest(self.md5)

    @property
    def is_acknowledged(self) -> bool:
        return self.etag is not None

    def acknowledged(self, etag: str) -> 'PartDescriptor':
        return replace(self, etag=etag)


@dataclass
class UploadSession:
    """1つのマルチパートアップロード"""
    bucket: str
    key: str
    upload_id: Optional[str] = None
    content_type: Optional[str] = None
    state: SessionState = SessionState.CREATED
    parts: Dict[int, PartDescriptor] = field(default_factory=dict, repr=False)

    def transition(self, new_state: SessionState):
        """状態を遷移 (不正な遷移は OrchestrationError)"""
        if new_state is SessionState.ABORTED:
            if self.state.is_terminal:
                raise OrchestrationError(
                    f"Cannot abort upload of {self.bucket}/{self.key} in state {self.state.value}"
                )
        elif new_state not in _TRANSITIONS.get(self.state, set()):
            raise OrchestrationError(
                f"Invalid transition for {self.bucket}/{self.key}: "
                f"{self.state.value} -> {new_state.value}"
            )
        self.state = new_state

    def record_part(self, descriptor: PartDescriptor):
        if not descriptor.is_acknowledged:
            raise OrchestrationError(
                f"Part {descriptor.part_number} has no entity tag and cannot be recorded"
            )
        self.parts[descriptor.part_number] = descriptor

    def ordered_parts(self) -> List[PartDescriptor]:
        return [self.parts[n] for n in sorted(self.parts)]

    def assembled_payload(self) -> bytes:
        """パート番号順に連結したペイロード"""
        return b"".join(part.payload for part in self.ordered_parts())


@dataclass(frozen=True)
class ManifestEntry:
    part_number: int
    etag: str


@dataclass
class CompletionManifest:
    """CompleteMultipartUpload に渡す (パート番号, ETag) の列"""
    entries: List[ManifestEntry] = field(default_factory=list)

    @classmethod
    def from_descriptors(cls, descriptors: Iterable[PartDescriptor]) -> 'CompletionManifest':
        entries = []
        for descriptor in sorted(descriptors, key=lambda d: d.part_number):
            if not descriptor.is_acknowledged:
                raise FinalizationError(
                    f"Part {descriptor.part_number} has not been acknowledged by the store"
                )
            entries.append(ManifestEntry(descriptor.part_number, descriptor.etag))
        return cls(entries)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[int, str]]) -> 'CompletionManifest':
        return cls([ManifestEntry(number, etag) for number, etag in pairs])

    @property
    def part_numbers(self) -> List[int]:
        return [entry.part_number for entry in self.entries]

    def __len__(self) -> int:
        return len(self.entries)

    def validate(self, session: UploadSession):
        """セッションのパートと過不足なく対応しているか検証

        重複なし・1からの連番・ETag一致を要求する。順序は問わない (送信時に昇順に並べる)。
        """
        numbers = self.part_numbers
        if not numbers:
            raise FinalizationError("Manifest is empty")

        if len(set(numbers)) != len(numbers):
            raise FinalizationError(f"Manifest contains duplicate part numbers: {numbers}")

        if sorted(numbers) != list(range(1, len(numbers) + 1)):
            raise FinalizationError(f"Manifest part numbers are not contiguous from 1: {numbers}")

        uploaded = set(session.parts)
        missing = sorted(uploaded - set(numbers))
        extra = sorted(set(numbers) - uploaded)
        if missing or extra:
            raise FinalizationError(
                f"Manifest does not match uploaded parts (missing={missing}, extra={extra})"
            )

        for entry in self.entries:
            recorded = session.parts[entry.part_number].etag
            if strip_etag_quotes(entry.etag) != strip_etag_quotes(recorded):
                raise FinalizationError(
                    f"Manifest entity tag for part {entry.part_number} does not match "
                    f"the uploaded part ({entry.etag} != {recorded})"
                )

    def to_request(self) -> Dict[str, List[Dict[str, object]]]:
        """boto3 の MultipartUpload 引数 (パート番号の昇順)"""
        return {
            "Parts": [
                {"ETag": entry.etag, "PartNumber": entry.part_number}
                for entry in sorted(self.entries, key=lambda e: e.part_number)
            ]
        }


class BucketState(Enum):
    UNKNOWN = "unknown"
    PRESENT = "present"
    ABSENT = "absent"


@dataclass
class BucketHandle:
    """バケット名と最後に観測した存在状態"""
    name: str
    state: BucketState = BucketState.UNKNOWN

    @property
    def exists(self) -> bool:
        return self.state is BucketState.PRESENT
