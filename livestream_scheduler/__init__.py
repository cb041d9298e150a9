"""Schedule recurring weekly YouTube livestreams on persistent ingest streams."""

__version__ = "1.0.0"
