"""
Uploaded file handling for quickhttp.
"""

import logging
import mimetypes
import os
import secrets
import string
from typing import Optional

from werkzeug.datastructures import FileStorage

from quickhttp.config import HttpConfig, default_config

logger = logging.getLogger(__name__)

_NAME_ALPHABET = string.ascii_letters + string.digits


class UploadedFile(FileStorage):
    """
    A file sent with a multipart request.

    Adds naming and storage helpers on top of Werkzeug's ``FileStorage``.
    Stored files land under the configured ``upload_root``.
    """

    def __init__(self, *args, config: Optional[HttpConfig] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.config = config or default_config
        self._hash_name: Optional[str] = None
        self._stored_path: Optional[str] = None

    @classmethod
    def create_from_base(cls, file: FileStorage, config: Optional[HttpConfig] = None) -> "UploadedFile":
        """Wrap a plain ``FileStorage`` without copying its stream."""
        if isinstance(file, cls):
            return file
        return cls(
            stream=file.stream,
            filename=file.filename,
            name=file.name,
            headers=file.headers,
            config=config,
        )

    def client_original_name(self) -> str:
        return self.filename or ""

    def client_mime_type(self) -> str:
        return self.mimetype or "application/octet-stream"

    def path(self) -> Optional[str]:
        """Where the file was stored, or None before it has been stored."""
        return self._stored_path

    def extension(self) -> str:
        """Guess the extension from the MIME type, then from the client name."""
        guessed = mimetypes.guess_extension(self.mimetype) if self.mimetype else None
        if guessed:
            return guessed.lstrip(".")
        return os.path.splitext(self.client_original_name())[1].lstrip(".").lower()

    def hash_name(self, path: Optional[str] = None) -> str:
        """Return a random file name (stable per instance) with the file's extension."""
        if self._hash_name is None:
            length = self.config.get("hash_name_length")
            self._hash_name = "".join(secrets.choice(_NAME_ALPHABET) for _ in range(length))

        extension = self.extension()
        name = self._hash_name + (f".{extension}" if extension else "")
        if path:
            return path.rstrip("/") + "/" + name
        return name

    def store(self, path: str = "") -> str:
        return self.store_as(path, self.hash_name())

    def store_publicly(self, path: str = "") -> str:
        return self.store_as(path, self.hash_name())

    def store_publicly_as(self, path: str, name: Optional[str] = None) -> str:
        return self.store_as(path, name)

    def store_as(self, path: str, name: Optional[str] = None) -> str:
        """
        Save the file as ``path/name`` under the upload root.

        Called with a single argument, that argument is the file name and
        the file goes directly into the upload root.
        """
        if name is None:
            path, name = "", path

        directory = os.path.join(self.config.get("upload_root") or "", path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        target = os.path.join(directory, name)

        self.save(target)
        self._stored_path = target
        logger.info("Stored upload %r at %s", self.client_original_name(), target)
        return target
