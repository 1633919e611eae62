from .chunk import Chunk
from .configs import ChunkyOptions, HeaderField
from .frontmatter import FrontMatter, FrontMatterView, serialize_front_matter
from .section import Section

__all__ = [
    "Chunk",
    "ChunkyOptions",
    "FrontMatter",
    "FrontMatterView",
    "HeaderField",
    "Section",
    "serialize_front_matter",
]
