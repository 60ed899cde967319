"""driftsync: align a comparison recording to a base recording by offset and rate."""

__version__ = "0.3.0"
