"""Market peak analysis service."""
