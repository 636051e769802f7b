from .catalog import CatalogUseCase
from .meta import MetaUseCase
from .stream import StreamUseCase

__all__ = ["CatalogUseCase", "MetaUseCase", "StreamUseCase"]
