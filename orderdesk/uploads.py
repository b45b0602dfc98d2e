import os
import secrets
import time
from typing import BinaryIO, Optional

from .errors import BadRequest, UpstreamFailure
from .log import get_logger

logger = get_logger(__name__)

RECEIPTS_SUBDIR = "receipts"
PUBLIC_PREFIX = "/uploads"
CHUNK_SIZE = 1024 * 1024

# Receipts are served back as static files; keep them to inert formats
ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".heic", ".pdf"}


class ReceiptStore:
    """Writes uploaded receipts under ``<root>/receipts``.

    Stored files are addressed by their public path (``/uploads/receipts/...``),
    which is what orders keep in their notes.
    """

    def __init__(self, root: str):
        self.root = root
        self.directory = os.path.join(root, RECEIPTS_SUBDIR)

    def ensure_directories(self) -> None:
        os.makedirs(self.directory, exist_ok=True)

    @staticmethod
    def extension(original_name: Optional[str]) -> str:
        return os.path.splitext(original_name or "")[1].lower()

    @classmethod
    def make_filename(cls, original_name: Optional[str]) -> str:
        # millisecond timestamp plus a random suffix so same-millisecond uploads differ
        return f"receipt-{int(time.time() * 1000)}-{secrets.token_hex(4)}{cls.extension(original_name)}"

    def public_path(self, filename: str) -> str:
        return f"{PUBLIC_PREFIX}/{RECEIPTS_SUBDIR}/{filename}"

    def check_allowed(self, original_name: Optional[str]) -> None:
        if self.extension(original_name) not in ALLOWED_EXTENSIONS:
            allowed = ", ".join(sorted(ALLOWED_EXTENSIONS))
            raise BadRequest(f"Receipt must be one of: {allowed}")

    def save(self, stream: BinaryIO, original_name: Optional[str]) -> str:
        """Copy ``stream`` to disk and return the public path of the new file."""
        self.check_allowed(original_name)
        filename = self.make_filename(original_name)
        file_path = os.path.join(self.directory, filename)
        try:
            self.ensure_directories()
            with open(file_path, "xb") as f:
                while True:
                    chunk = stream.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    f.write(chunk)
        except OSError as e:
            logger.error(f"Failed to store receipt {filename}: {e}")
            raise UpstreamFailure() from e
        logger.info(f"Stored receipt {filename}")
        return self.public_path(filename)

    def discard(self, public_path: str) -> None:
        """Remove a receipt saved for an order that was never written."""
        filename = os.path.basename(public_path)
        try:
            os.remove(os.path.join(self.directory, filename))
        except FileNotFoundError:
            return
        except OSError as e:
            logger.error(f"Failed to remove orphaned receipt {filename}: {e}")
            return
        logger.info(f"Removed orphaned receipt {filename}")


def receipt_marker(public_path: str) -> str:
    return f"\n[Receipt: {public_path}]"
