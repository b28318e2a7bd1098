"""GitHub API data models."""

import base64
from typing import Any, Literal

from pydantic import BaseModel, Field


class FileContent(BaseModel):
    """Payload of the contents endpoint for a single file."""

    content: str
    encoding: str | None = None  # Usually "base64"
    name: str | None = None
    path: str | None = None
    sha: str | None = None
    size: int | None = None
    type: Literal["file", "dir", "symlink", "submodule"] | None = None
    html_url: str | None = None
    download_url: str | None = None

    def decoded(self) -> str:
        """
        Decode GitHub's line-wrapped base64 content.

        Each line is decoded on its own and the bytes are joined in order.
        """
        lines = (line.strip() for line in self.content.split("\n"))
        chunks = [base64.b64decode(line, validate=True) for line in lines if line]
        return b"".join(chunks).decode("utf-8")


class Page(BaseModel):
    """One page of a paginated listing."""

    items: list[Any] = Field(default_factory=list)
    next_url: str | None = None  # Continuation cursor; None on the last page
