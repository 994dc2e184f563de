"""chatsync command line interface."""
from chatsync import __version__

__all__ = ["__version__"]
