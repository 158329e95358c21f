"""FileCaptureProvider — image read from a user-selected file."""
import mimetypes
from pathlib import Path

from infectoscan.constants import MSG_NOT_AN_IMAGE, SOURCE_FILE
from infectoscan.capture.client import CaptureProvider
from infectoscan.models import CapturedImage


def guess_image_mime_type(path: Path) -> str:
    """MIME type from the file extension; ValueError unless it is an image type."""
    mime_type, _ = mimetypes.guess_type(path.name)
    match mime_type:
        case str() as m if m.startswith("image/"):
            return m
        case _:
            raise ValueError(f"{MSG_NOT_AN_IMAGE} ({path.name})")


class FileCaptureProvider(CaptureProvider):

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    def capture(self) -> CapturedImage:
        mime_type = guess_image_mime_type(self._path)
        data = self._path.read_bytes()
        match data:
            case b"":
                raise ValueError(f"{self._path.name} is empty")
            case _:
                return CapturedImage(data=data, mime_type=mime_type, source=SOURCE_FILE)
