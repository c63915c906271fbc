"""Error taxonomy for gallery operations."""


class GalleryError(Exception):
    """Base class for errors surfaced to gallery users."""


class StorageWriteError(GalleryError):
    """Binary content could not be stored in the media host."""


class StorageDeleteError(GalleryError):
    """A stored object could not be removed; callers log and continue."""


class MetadataWriteError(GalleryError):
    """A photo record could not be created or updated."""


class MetadataReadError(GalleryError):
    """Photo records could not be listed."""


class InvalidCropError(GalleryError):
    """The crop rectangle cannot produce a non-empty image."""


class TaintedCanvasError(GalleryError):
    """Pixel data of the source image is not readable."""


class SourceImageError(GalleryError):
    """The source image could not be downloaded."""


class TileBusyError(GalleryError):
    """Another upload or crop save is still running on the tile."""


class TileStateError(GalleryError):
    """The requested gesture is not valid in the tile's current state."""


class PhotoNotFoundError(GalleryError):
    """No tile is registered for the requested photo id."""
