"""Persistence collaborator interfaces.

The package never stores anything itself. Callers provide a ReportStore
(durable report records) and a FileStore (raw G-code uploads).
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from gcode_report.models.report import Report


@dataclass(frozen=True)
class StoredFile:
    """Location of an uploaded raw file.

    Attributes:
        file_id: Id assigned by the file store
        storage_path: Path of the file inside the store
    """

    file_id: str
    storage_path: str


class FileStore(Protocol):
    """Uploads raw G-code files."""

    async def upload_raw_file(self, user_id: str, file_name: str, content: str) -> StoredFile:
        ...


class ReportStore(Protocol):
    """Saves assembled reports and returns their durable id."""

    async def save_report(
        self,
        user_id: str,
        file_name: str,
        report: Report,
        file_ref: Optional[str] = None,
        storage_path: Optional[str] = None,
        raw_result: Optional[Dict[str, Any]] = None,
    ) -> str:
        ...
