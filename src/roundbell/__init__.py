"""roundbell: an interval timer for rounds and rests."""

__version__ = "0.1.0"
