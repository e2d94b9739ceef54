"""
Local image storage for profile and event pictures.

Files land in `upload_dir` as `<epoch-millis>-<original name>` and are
served back by the app under `/uploads`. Only the returned reference
(`/uploads/<file>`) is stored on the record.

Routes wrap the store call in `staged()` so a failed update leaves no
file behind.
"""

import logging
import os
import shutil
import time
from contextlib import contextmanager
from typing import Iterator

from fastapi import UploadFile

logger = logging.getLogger(__name__)

URL_PREFIX = "/uploads"


class ImageStore:
    def __init__(self, upload_dir: str):
        self.upload_dir = upload_dir

    def ensure_dir(self) -> None:
        os.makedirs(self.upload_dir, exist_ok=True)

    def save(self, upload: UploadFile | None) -> str | None:
        """Persist `upload` and return its public reference, or None."""

        if upload is None or not upload.filename:
            return None

        name = f"{int(time.time() * 1000)}-{os.path.basename(upload.filename)}"
        self.ensure_dir()
        with open(os.path.join(self.upload_dir, name), "wb") as out:
            shutil.copyfileobj(upload.file, out)
        logger.debug("stored upload %s", name)
        return f"{URL_PREFIX}/{name}"

    def discard(self, ref: str | None) -> None:
        if not ref:
            return
        path = os.path.join(self.upload_dir, ref.rsplit("/", 1)[-1])
        if os.path.exists(path):
            os.remove(path)
            logger.debug("discarded upload %s", path)

    @contextmanager
    def staged(self, upload: UploadFile | None) -> Iterator[str | None]:
        """Save `upload` for the duration of the block; remove it if the block raises."""

        ref = self.save(upload)
        try:
            yield ref
        except BaseException:
            self.discard(ref)
            raise
