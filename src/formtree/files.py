"""File inspectors.

The engine reaches file metadata only through a FileInspector. Two are
provided: one for upload-like objects exposing ``name``/``size``/``type``
attributes, and one for filesystem paths. Neither decodes image data; image
dimensions come from the object itself or from an injected probe.
"""

import mimetypes
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from formtree.errors import FileInspectionError
from formtree.types import FileInfo, ImageFileInfo

DimensionProbe = Callable[[Any], Awaitable[tuple[int, int]]]


def _image_info(info: FileInfo, width: int, height: int) -> ImageFileInfo:
    return ImageFileInfo(
        name=info.name,
        size=info.size,
        type=info.type,
        width=width,
        height=height,
        ratio=width / height if height else 0.0,
    )


class AttributeFileInspector:
    """Describes objects that carry their own file metadata.

    A value counts as a file when it has ``name`` and ``size`` attributes and
    a MIME type under ``type`` or ``content_type``. Image dimensions are read
    from ``width``/``height`` attributes, or from ``dimension_probe`` if given.
    """

    def __init__(self, dimension_probe: DimensionProbe | None = None):
        self.dimension_probe = dimension_probe

    def is_file(self, value: Any) -> bool:
        return (
            hasattr(value, "name")
            and hasattr(value, "size")
            and (hasattr(value, "type") or hasattr(value, "content_type"))
        )

    def describe_file(self, file: Any) -> FileInfo:
        if not self.is_file(file):
            raise FileInspectionError(f"{file!r} does not look like a file")
        mime = getattr(file, "type", None) or getattr(file, "content_type", None) or ""
        return FileInfo(name=str(file.name), size=int(file.size), type=str(mime))

    async def describe_image_file(self, file: Any) -> ImageFileInfo:
        info = self.describe_file(file)
        if self.dimension_probe is not None:
            width, height = await self.dimension_probe(file)
        elif hasattr(file, "width") and hasattr(file, "height"):
            width, height = file.width, file.height
        else:
            raise FileInspectionError(f"No dimension source for '{info.name}'")
        return _image_info(info, int(width), int(height))


class PathFileInspector:
    """Describes files on disk given as ``pathlib.Path`` values.

    Size comes from ``stat``, the MIME type is guessed from the suffix.
    Dimensions require a ``dimension_probe``.
    """

    def __init__(self, dimension_probe: DimensionProbe | None = None):
        self.dimension_probe = dimension_probe

    def is_file(self, value: Any) -> bool:
        return isinstance(value, Path)

    def describe_file(self, file: Any) -> FileInfo:
        path = Path(file)
        try:
            stat = path.stat()
        except OSError as e:
            raise FileInspectionError(f"Cannot stat '{path}': {e}") from e
        mime, _ = mimetypes.guess_type(path.name)
        return FileInfo(name=path.name, size=stat.st_size, type=mime or "")

    async def describe_image_file(self, file: Any) -> ImageFileInfo:
        info = self.describe_file(file)
        if self.dimension_probe is None:
            raise FileInspectionError(f"No dimension probe configured for '{info.name}'")
        width, height = await self.dimension_probe(file)
        return _image_info(info, int(width), int(height))
