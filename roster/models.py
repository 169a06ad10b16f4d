# roster/models.py
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel


@dataclass
class Upload:
    """One file received in a multipart submission."""

    filename: str
    data: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)


class Acknowledgement(BaseModel):
    success: bool = True


class ErrorBody(BaseModel):
    error: str
