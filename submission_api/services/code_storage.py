"""
Blob storage for submitted source code.

Single-file code lives at ``<prefix>/<submission_id>``; multi-file code lives
at ``<prefix>/<submission_id>/<index>`` with one object per expected file.
"""
from __future__ import annotations

import base64
import binascii
import io
import logging
import threading
import zipfile
from typing import Dict, List, Optional, Protocol, Sequence, Union

from ..aws_clients import s3_client
from ..config import Settings

logger = logging.getLogger(__name__)

Code = Union[str, List[str]]


class CodeStorage(Protocol):
    """Protocol defining the interface for code storage backends."""

    def read_code(self, submission_id: str, file_count: Optional[int] = None) -> Code:
        """Read code back.

        Args:
            submission_id: Submission identifier
            file_count: ``None`` for single-file code, otherwise the number of files

        Returns:
            The code string, or a list of ``file_count`` strings
        """
        ...

    def write_code(self, submission_id: str, code: Code) -> None:
        """Persist code under the submission id (a list is stored file by file)."""
        ...

    def unzip_code(self, payload: str, file_names: Sequence[str]) -> Optional[List[str]]:
        """Expand an archived payload into per-file contents ordered by ``file_names``."""
        ...


def unzip_code(payload: str, file_names: Sequence[str]) -> List[str]:
    """
    Decode a base64 zip archive into the contents of the expected files.

    Files absent from the archive come back as empty strings. A payload that
    is not an archive becomes the first expected file and the rest are empty.
    """
    try:
        raw = base64.b64decode(payload, validate=True)
        with zipfile.ZipFile(io.BytesIO(raw), "r") as archive:
            by_name = {}
            for info in archive.infolist():
                if info.is_dir():
                    continue
                by_name.setdefault(info.filename, info)
                by_name.setdefault(info.filename.rsplit("/", 1)[-1], info)
            contents = []
            for name in file_names:
                info = by_name.get(name)
                if info is None:
                    contents.append("")
                else:
                    contents.append(archive.read(info).decode("utf-8", errors="replace"))
            return contents
    except (binascii.Error, zipfile.BadZipFile, ValueError):
        if len(file_names) > 1:
            logger.info(
                f"Payload is not a zip archive; using it as {file_names[0]} "
                f"of {len(file_names)} expected files"
            )
        return [payload] + [""] * (len(file_names) - 1)


class S3CodeStorage:
    """S3 code storage backend implementation."""

    def __init__(self, s3, bucket: str, prefix: str = "submissions") -> None:
        self._s3 = s3
        self.bucket = bucket
        self.prefix = prefix.strip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3CodeStorage":
        return cls(s3_client(settings), settings.code_bucket, settings.code_prefix)

    def _key(self, submission_id: str, index: Optional[int] = None) -> str:
        if index is None:
            return f"{self.prefix}/{submission_id}"
        return f"{self.prefix}/{submission_id}/{index}"

    def _get(self, key: str) -> str:
        response = self._s3.get_object(Bucket=self.bucket, Key=key)
        return response["Body"].read().decode("utf-8")

    def _put(self, key: str, content: str) -> None:
        self._s3.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=content.encode("utf-8"),
            ContentType="text/plain; charset=utf-8",
        )

    def read_code(self, submission_id: str, file_count: Optional[int] = None) -> Code:
        if file_count is None:
            return self._get(self._key(submission_id))
        return [self._get(self._key(submission_id, i)) for i in range(file_count)]

    def write_code(self, submission_id: str, code: Code) -> None:
        if isinstance(code, str):
            self._put(self._key(submission_id), code)
        else:
            for i, content in enumerate(code):
                self._put(self._key(submission_id, i), content)
        logger.info(f"Stored code for submission {submission_id} in s3://{self.bucket}/{self.prefix}")

    def unzip_code(self, payload: str, file_names: Sequence[str]) -> List[str]:
        return unzip_code(payload, file_names)


class MemoryCodeStorage:
    """In-memory code storage with the same key layout as ``S3CodeStorage``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._objects: Dict[str, str] = {}

    def read_code(self, submission_id: str, file_count: Optional[int] = None) -> Code:
        with self._lock:
            if file_count is None:
                return self._objects[submission_id]
            return [self._objects[f"{submission_id}/{i}"] for i in range(file_count)]

    def write_code(self, submission_id: str, code: Code) -> None:
        with self._lock:
            if isinstance(code, str):
                self._objects[submission_id] = code
            else:
                for i, content in enumerate(code):
                    self._objects[f"{submission_id}/{i}"] = content

    def unzip_code(self, payload: str, file_names: Sequence[str]) -> List[str]:
        return unzip_code(payload, file_names)


def create_code_storage(settings: Settings) -> CodeStorage:
    """Build the code storage selected by ``CODE_BACKEND``."""
    if settings.code_backend == "memory":
        logger.info("Initializing in-memory code storage")
        return MemoryCodeStorage()
    logger.info("Initializing S3 code storage (default)")
    return S3CodeStorage.from_settings(settings)
