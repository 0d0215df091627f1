"""wikigantt: flat-tree task lists for jsGantt charts."""

from wikigantt.config import VERSION

__version__ = VERSION
