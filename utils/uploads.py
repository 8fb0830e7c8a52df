import os
import secrets

from werkzeug.utils import secure_filename

_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


class LocalUploadStore:
    """
    Writes uploaded blobs to a local folder and returns their public URL.
    Stands in for hosted object storage.
    """

    def __init__(self, folder: str, base_url: str):
        self.folder = folder
        self.base_url = base_url.rstrip("/")

    def upload(self, data: bytes, content_type: str, filename: str = "") -> str:
        os.makedirs(self.folder, exist_ok=True)
        stem = os.path.splitext(secure_filename(filename or ""))[0] or "file"
        ext = _EXTENSIONS.get(content_type) or os.path.splitext(filename or "")[1].lower()
        name = f"{stem}-{secrets.token_hex(6)}{ext}"
        with open(os.path.join(self.folder, name), "wb") as fh:
            fh.write(data)
        return f"{self.base_url}/{name}"
